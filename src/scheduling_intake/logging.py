"""Per-module loggers for the pipeline, the web app and the CLI."""

import logging
import os
from typing import Optional

_MARKER = "_scheduling_configured"
_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _coerce_level(value: Optional[str]) -> int:
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.upper().strip())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, writing to stderr so CLI output on stdout stays clean.

    LOG_LEVEL (default INFO) and LOG_FILE are read the first time a name is
    requested.
    """
    logger = logging.getLogger(name)
    if getattr(logger, _MARKER, False):
        return logger

    level = _coerce_level(os.environ.get("LOG_LEVEL"))
    logger.setLevel(level)
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except OSError:
            logger.warning(f"LOG_FILE {log_file!r} could not be opened; logging to stderr only")
        else:
            fh.setFormatter(formatter)
            logger.addHandler(fh)

    logger.propagate = False
    setattr(logger, _MARKER, True)
    return logger
