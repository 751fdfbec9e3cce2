"""Request-scoped domain types, errors and the text normalizer."""

from .errors import (
    ConfigError,
    InputError,
    OcrError,
    PreprocessError,
    SchedulingError,
    UpstreamError,
)
from .models import (
    FallbackRecord,
    ImageInput,
    NormalizedText,
    OcrResult,
    ParsedRecord,
    TextInput,
    WordConfidence,
)

__all__ = [
    "ConfigError",
    "InputError",
    "OcrError",
    "PreprocessError",
    "SchedulingError",
    "UpstreamError",
    "FallbackRecord",
    "ImageInput",
    "NormalizedText",
    "OcrResult",
    "ParsedRecord",
    "TextInput",
    "WordConfidence",
]
