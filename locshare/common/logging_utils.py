"""
Logging setup shared by the client facade and the CLI.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logger: logging.Logger | str, log_level: int) -> logging.Logger:
    """
    Attach a single formatted StreamHandler to ``logger``.

    Module loggers under ``locshare.*`` propagate to the package logger, so
    callers normally configure ``"locshare"`` once and leave the rest alone.
    Calling this again only updates the level.
    """
    if isinstance(logger, str):
        logger = logging.getLogger(logger)
    logger.setLevel(log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(log_level)
    return logger
