"""Logging helpers for the matching service.

`get_logger` attaches a shared stream handler and, unless `LOG_TO_FILE=0`,
a rotating file handler under `LOG_DIR`. The level comes from `LOG_LEVEL`.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(__file__), "..", "logs"))
LOG_FILE = os.path.join(LOG_DIR, os.getenv("LOG_FILE_NAME", "matching.log"))
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "1").strip().lower() not in ("0", "false", "no")

_formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

_handlers = []

_stream_handler = logging.StreamHandler()
_stream_handler.setFormatter(_formatter)
_handlers.append(_stream_handler)

if LOG_TO_FILE:
    os.makedirs(LOG_DIR, exist_ok=True)
    _file_handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3)
    _file_handler.setFormatter(_formatter)
    _handlers.append(_file_handler)

_DEFAULT_LEVEL = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
if not isinstance(_DEFAULT_LEVEL, int):
    _DEFAULT_LEVEL = logging.INFO


def get_logger(name: str = __name__, level: int = _DEFAULT_LEVEL) -> logging.Logger:
    """Return a logger wired to the shared handlers, configuring it only once."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        for handler in _handlers:
            logger.addHandler(handler)
    return logger
