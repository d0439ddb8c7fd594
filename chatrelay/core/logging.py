# chatrelay/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO/DEBUG while relaying
_NOISY_LOGGERS = ("multipart", "python_multipart", "websockets", "uvicorn.protocols")


def setup_logging() -> None:
    """
    Configure logging for the relay process.

    Connection lifecycle, joins, room switches and upload outcomes are
    logged under ``chatrelay.*``; those follow LOG_LEVEL (default INFO).
    Set LOG_LEVEL=DEBUG to also see dropped frames and ignored events.

    When uvicorn has already installed handlers only the level is applied,
    so server and relay lines end up in one stdout stream either way.
    """
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    logging.getLogger("chatrelay").setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if root_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root_logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Module logger; pass ``__name__`` so records land under ``chatrelay.*``."""
    return logging.getLogger(name)
