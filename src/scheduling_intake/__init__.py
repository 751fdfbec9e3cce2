"""
Scheduling intake – turn free text or a photographed note into a
structured scheduling record via OCR and a generative model.

The pipeline lives in ``orchestrator``; ``web`` and ``cli`` are thin
entry points over it.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
