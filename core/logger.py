"""Logging helpers for the application.

`get_logger` hands out named loggers (`api.*`, `services.*`, `core.*`)
sharing one stream handler and one rotating file handler. The handlers are
built on first use so the log directory from configuration is only created
once something actually logs.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from core import config

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_handlers = []


def _shared_handlers():
    if not _handlers:
        formatter = logging.Formatter(_FORMAT)
        os.makedirs(config.LOG_DIR, exist_ok=True)

        stream_handler = logging.StreamHandler()
        file_handler = RotatingFileHandler(
            os.path.join(config.LOG_DIR, config.LOG_FILE_NAME),
            maxBytes=config.LOG_MAX_BYTES,
            backupCount=3,
        )
        for handler in (stream_handler, file_handler):
            handler.setFormatter(formatter)
            _handlers.append(handler)
    return _handlers


def get_logger(name: str = __name__, level: int = None) -> logging.Logger:
    """Return a configured logger with stream and rotating file handlers.

    Calling it again for the same name returns the same logger without
    adding duplicate handlers. The level defaults to the configured
    LOG_LEVEL.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level if level is not None else getattr(logging, config.LOG_LEVEL, logging.INFO))
        for handler in _shared_handlers():
            logger.addHandler(handler)
    return logger
