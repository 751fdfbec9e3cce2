"""Image preprocessing + OCR adapter (Pillow + Tesseract)."""

from __future__ import annotations

import io
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import pytesseract
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError
from pytesseract import Output

from ..domain.errors import OcrError, PreprocessError
from ..domain.models import OcrResult, WordConfidence
from ..logging import get_logger
from ..paths import ensure_dir

LOG = get_logger("orchestrator-preprocess")

DEFAULT_TARGET_WIDTH = 1000
DEFAULT_LANG = "eng"

OcrEngine = Callable[[str, str], Dict[str, List[Any]]]


def _tesseract_data(path: str, lang: str) -> Dict[str, List[Any]]:
    return pytesseract.image_to_data(path, lang=lang, output_type=Output.DICT)


def _decode(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Image.DecompressionBombError as exc:
        raise PreprocessError(f"Image is too large to process: {exc}") from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise PreprocessError(f"Input is not a decodable image: {exc}") from exc
    return img


def preprocess_image(img: Image.Image, *, target_width: int = DEFAULT_TARGET_WIDTH) -> Image.Image:
    """Grayscale, sharpen and scale to ``target_width`` keeping the aspect ratio."""
    img = ImageOps.exif_transpose(img)
    gray = ImageOps.grayscale(img)
    sharp = gray.filter(ImageFilter.SHARPEN)
    w, h = sharp.size
    if w != target_width:
        new_h = max(1, round(h * target_width / float(w)))
        sharp = sharp.resize((target_width, new_h), Image.Resampling.LANCZOS)
    return sharp


@contextmanager
def _temporary_png(img: Image.Image, work_dir: Optional[str]) -> Iterator[str]:
    if work_dir:
        work_dir = ensure_dir(work_dir)
    fd, path = tempfile.mkstemp(prefix="processed-", suffix=".png", dir=work_dir)
    try:
        with os.fdopen(fd, "wb") as fh:
            img.save(fh, format="PNG")
        LOG.debug(f"Wrote processed image: {path}")
        yield path
    finally:
        try:
            os.remove(path)
            LOG.debug(f"Removed processed image: {path}")
        except FileNotFoundError:
            pass


def _confidence(raw: Any) -> float:
    try:
        conf = float(raw)
    except (TypeError, ValueError):
        return -1.0
    return min(conf, 100.0)


def _field_int(data: Dict[str, List[Any]], key: str, index: int) -> int:
    values = data.get(key) or []
    try:
        return int(values[index])
    except (IndexError, TypeError, ValueError):
        return 0


def words_and_text(data: Dict[str, List[Any]]) -> Tuple[List[WordConfidence], str]:
    """Collect recognized words and rebuild line-ordered text from image_to_data output."""
    words: List[WordConfidence] = []
    lines: Dict[Tuple[int, int, int, int], List[str]] = {}
    texts = data.get("text") or []
    confs = data.get("conf") or []
    for i, raw_text in enumerate(texts):
        token = str(raw_text or "").strip()
        conf = _confidence(confs[i]) if i < len(confs) else -1.0
        if not token or conf < 0:
            continue
        words.append(WordConfidence(token=token, confidence=conf))
        key = (
            _field_int(data, "page_num", i),
            _field_int(data, "block_num", i),
            _field_int(data, "par_num", i),
            _field_int(data, "line_num", i),
        )
        lines.setdefault(key, []).append(token)
    text = "\n".join(" ".join(toks) for _, toks in sorted(lines.items()))
    return words, text


def text_from_image(
    data: bytes,
    *,
    lang: str = DEFAULT_LANG,
    target_width: int = DEFAULT_TARGET_WIDTH,
    work_dir: Optional[str] = None,
    engine: Optional[OcrEngine] = None,
) -> OcrResult:
    """Preprocess ``data`` and run OCR over it.

    The processed image lives in a uniquely named temporary file that is
    removed before returning, whether OCR succeeds or not.
    """
    img = _decode(data)
    LOG.info(f"Preprocessing image {img.size[0]}x{img.size[1]} mode={img.mode} -> width {target_width}")
    try:
        processed = preprocess_image(img, target_width=target_width)
    except (OSError, ValueError) as exc:
        raise PreprocessError(f"Image preprocessing failed: {exc}") from exc

    run = engine or _tesseract_data
    with _temporary_png(processed, work_dir) as path:
        try:
            ocr_data = run(path, lang)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            LOG.error(f"OCR failed: {exc}")
            raise OcrError(f"OCR failed: {exc}") from exc

    words, text = words_and_text(ocr_data)
    LOG.info(f"OCR produced {len(words)} word(s), {len(text)} chars")
    return OcrResult(text=text, words=words)
