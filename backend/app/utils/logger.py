"""Logging configuration for the application."""
import logging
import sys
from app.config import settings

_level = logging.DEBUG if settings.environment == "development" else logging.INFO

logger = logging.getLogger("app")
logger.setLevel(_level)

handler = logging.StreamHandler(sys.stdout)
handler.setLevel(_level)
handler.setFormatter(
    logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

if not logger.handlers:
    logger.addHandler(handler)

# Prevent duplicate logs
logger.propagate = False

__all__ = ["logger"]
