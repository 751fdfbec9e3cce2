from typing import Optional


class SchedulingError(Exception):
    """Base class for failures surfaced by the extraction pipeline."""


class InputError(SchedulingError):
    """Input is missing, empty, or yielded no extractable text."""


class PreprocessError(SchedulingError):
    """Uploaded bytes could not be decoded as an image."""


class OcrError(SchedulingError):
    """The OCR engine failed or is unavailable."""


class UpstreamError(SchedulingError):
    """The reasoning service was unreachable or returned an unusable response."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigError(SchedulingError):
    pass
