"""Logging configuration helpers."""

import logging

_LOGGER_NAME = "meal_analyzer"
_FORMAT = "%(levelname)s: %(name)s: %(message)s"
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger with a single stream handler.

    Safe to call repeatedly: the handler is installed once and later calls
    only adjust the level.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level.upper())
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if logger.handlers:
        return logger
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
