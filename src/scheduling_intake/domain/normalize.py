from typing import Callable, Optional, Sequence

from ..logging import get_logger
from .errors import InputError
from .models import ImageInput, NormalizedText, OcrResult, RawInput, TextInput, WordConfidence

_LOG = get_logger("normalize")

ImageReader = Callable[[bytes], OcrResult]


def average_confidence(words: Sequence[WordConfidence]) -> float:
    """Arithmetic mean of word confidences; 0.0 for an empty list."""
    if not words:
        return 0.0
    return sum(w.confidence for w in words) / len(words)


def normalize(raw: Optional[RawInput], *, reader: Optional[ImageReader] = None) -> NormalizedText:
    """Turn typed text or an image into one canonical string.

    Text input is stripped and must not be blank. Image input is handed to
    ``reader`` (the OCR adapter by default); an image without recognizable
    text is rejected the same way as blank text.
    """
    if raw is None:
        raise InputError("No input provided")

    if isinstance(raw, TextInput):
        content = raw.content if isinstance(raw.content, str) else ""
        text = content.strip()
        if not text:
            raise InputError("Input text is empty")
        _LOG.debug(f"Normalized text input ({len(text)} chars)")
        return NormalizedText(text=text)

    if isinstance(raw, ImageInput):
        if not raw.data:
            raise InputError("Uploaded image is empty")
        if reader is None:
            from ..orchestrator.preprocess import text_from_image as reader
        result = reader(raw.data)
        words = list(result.words)
        avg = average_confidence(words)
        text = (result.text or "").strip()
        _LOG.info(f"OCR recovered {len(words)} word(s), average confidence {avg:.2f}")
        if not text:
            raise InputError("No extractable text found in image")
        return NormalizedText(text=text, words=words, average_confidence=avg)

    raise InputError(f"Unsupported input type: {type(raw).__name__}")
