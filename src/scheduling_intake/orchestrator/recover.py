"""Recover a structured record from a free-form model reply."""

from __future__ import annotations

import json
from typing import Any

from ..domain.models import FallbackRecord, ParsedRecord, StructuredRecord
from ..logging import get_logger

LOG = get_logger("orchestrator-recover")


def recover(reply: Any) -> StructuredRecord:
    """Parse the span from the first ``{`` to the last ``}`` of ``reply``.

    Surrounding prose and code fences are tolerated. Anything else (no
    braces, braces in the wrong order, invalid JSON) yields the fallback
    record instead of an exception. When the reply holds several JSON
    fragments the whole outer span is tried as one document.
    """
    if not isinstance(reply, str):
        LOG.warning(f"Reply is not text ({type(reply).__name__}); returning fallback")
        return FallbackRecord()

    start = reply.find("{")
    end = reply.rfind("}")
    if start == -1 or end == -1 or end <= start:
        LOG.warning(f"No JSON object span in reply; first 200 chars: {reply[:200]!r}")
        return FallbackRecord()

    candidate = reply[start:end + 1]
    try:
        value = json.loads(candidate)
    except (ValueError, RecursionError) as exc:
        LOG.warning(f"JSON parse failed ({exc}); first 200 chars: {candidate[:200]!r}")
        return FallbackRecord()

    if not isinstance(value, dict):
        LOG.warning(f"Parsed JSON is {type(value).__name__}, not an object; returning fallback")
        return FallbackRecord()

    LOG.debug(f"Recovered object with keys: {sorted(value)}")
    return ParsedRecord(value)
