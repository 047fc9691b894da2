"""Logging setup shared by the scanner and vault CLIs."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP client chatter from the LLM and Supabase SDKs
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "hpack")


def setup_logging(
    level: int | str | None = None,
    module_name: str = "src",
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Attach a stdout handler (and optionally a file handler) to the package logger.

    Modules log through ``logging.getLogger(__name__)``, so configuring the
    ``src`` logger once covers the whole package. Calling this again is a
    no-op.

    Args:
        level: Level name or number; defaults to $SNIPER_LOG_LEVEL, then INFO.
        module_name: Logger to configure.
        log_file: Also append records to this file.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(module_name)

    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv("SNIPER_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
