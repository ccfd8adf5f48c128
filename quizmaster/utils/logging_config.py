"""Logging configuration helpers for the quiz application."""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level="INFO"):
    """Configure basic logging for the application and return its logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logger = logging.getLogger("quizmaster")
    logger.setLevel(level)
    return logger
