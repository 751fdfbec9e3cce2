"""End-to-end extraction pipeline: normalize → prompt → invoke → recover."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ..config import Settings
from ..domain.models import ImageInput, NormalizedText, RawInput, StructuredRecord, TextInput
from ..domain.normalize import ImageReader, normalize
from ..logging import get_logger
from .client import ExtractionClient, build_client
from .preprocess import text_from_image
from .prompt import build_prompt
from .recover import recover
from .retry import RetryingClient

LOG = get_logger("orchestrator-flow")


@dataclass(frozen=True)
class ExtractionOutcome:
    record: StructuredRecord
    normalized: NormalizedText
    prompt: str
    today: date


class ExtractionFlow:
    """Request-scoped pipeline runner; holds no per-request state."""

    def __init__(
        self,
        client: ExtractionClient,
        *,
        reader: ImageReader = text_from_image,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.client = client
        self.reader = reader
        self.clock = clock

    def run(self, raw: Optional[RawInput]) -> ExtractionOutcome:
        today = self.clock()
        normalized = normalize(raw, reader=self.reader)
        prompt = build_prompt(normalized.text, today)
        LOG.debug(f"Prompt built for {today.isoformat()} ({len(prompt)} chars)")
        reply = self.client.invoke(prompt)
        record = recover(reply)
        if record.is_fallback:
            LOG.warning("Reply could not be parsed; returning needs_clarification fallback")
        else:
            LOG.info(f"Extraction succeeded with status={record.as_dict().get('status')!r}")
        return ExtractionOutcome(record=record, normalized=normalized, prompt=prompt, today=today)

    def extract_from_text(self, text: Optional[str]) -> StructuredRecord:
        raw = TextInput(text) if text is not None else None
        return self.run(raw).record

    def extract_from_image(
        self,
        data: Optional[bytes],
        *,
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> StructuredRecord:
        raw = ImageInput(data, mime_type=mime_type, filename=filename) if data is not None else None
        return self.run(raw).record


def build_flow(settings: Settings, *, client: Optional[ExtractionClient] = None) -> ExtractionFlow:
    """Wire the configured client, retry policy and OCR settings."""
    inner = client or build_client(settings)
    if settings.retry_attempts > 1:
        LOG.info(f"Upstream retries enabled: {settings.retry_attempts} attempts")
        inner = RetryingClient(inner, attempts=settings.retry_attempts)
    reader = functools.partial(
        text_from_image,
        lang=settings.ocr_lang,
        target_width=settings.ocr_target_width,
        work_dir=settings.work_dir,
    )
    return ExtractionFlow(inner, reader=reader)
