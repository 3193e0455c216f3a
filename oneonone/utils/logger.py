"""
Logging configuration

Modules log through logging.getLogger(__name__); configuring the top-level
"oneonone" logger once (main.py) gives every oneonone.* logger its handler.
"""
import logging
import sys
from oneonone.config import get_settings

settings = get_settings()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    return logger
