"""Opt-in retry policy wrapped around an extraction client.

Model replies are not deterministic, so a retried call may answer
differently than the failed one would have. Only wrap a client when that
is acceptable; the default pipeline stays single-shot.
"""

from __future__ import annotations

import time
from typing import Callable

from ..domain.errors import UpstreamError
from ..logging import get_logger
from .client import ExtractionClient

LOG = get_logger("orchestrator-retry")


class RetryingClient:
    def __init__(
        self,
        inner: ExtractionClient,
        *,
        attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.inner = inner
        self.attempts = int(attempts)
        self.backoff_seconds = float(backoff_seconds)
        self._sleep = sleep

    def invoke(self, prompt: str) -> str:
        last_exc: UpstreamError | None = None
        for i in range(self.attempts):
            try:
                return self.inner.invoke(prompt)
            except UpstreamError as exc:
                last_exc = exc
                LOG.warning(f"Upstream attempt {i+1}/{self.attempts} failed: {exc}")
                if i + 1 < self.attempts:
                    self._sleep(self.backoff_seconds * (i + 1))
        assert last_exc is not None
        LOG.error(f"Upstream call failed after {self.attempts} attempts")
        raise last_exc
