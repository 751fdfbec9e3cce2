from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

FALLBACK_STATUS = "needs_clarification"
FALLBACK_MESSAGE = "Could not parse AI response"


@dataclass(frozen=True)
class TextInput:
    content: str


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: Optional[str] = None
    filename: Optional[str] = None


RawInput = Union[TextInput, ImageInput]


@dataclass(frozen=True)
class WordConfidence:
    token: str
    confidence: float

    def as_dict(self) -> Dict[str, Any]:
        return {"text": self.token, "confidence": round(self.confidence, 2)}


@dataclass(frozen=True)
class OcrResult:
    """Raw output of the image adapter: recognized text plus per-word confidence."""

    text: str
    words: List[WordConfidence] = field(default_factory=list)


@dataclass(frozen=True)
class NormalizedText:
    text: str
    words: List[WordConfidence] = field(default_factory=list)
    average_confidence: float = 0.0


@dataclass(frozen=True)
class ParsedRecord:
    """Domain object recovered from the model reply (not schema-checked)."""

    value: Dict[str, Any]
    is_fallback = False

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.value)


@dataclass(frozen=True)
class FallbackRecord:
    """Returned when the model reply holds no parseable JSON object."""

    status: str = FALLBACK_STATUS
    message: str = FALLBACK_MESSAGE
    is_fallback = True

    def as_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


StructuredRecord = Union[ParsedRecord, FallbackRecord]
