"""
Logging configuration.
"""
import logging
import sys

from labaudit.config import settings

# Create logger
logger = logging.getLogger("lab_auditor")
logger.setLevel(settings.LOG_LEVEL.upper())

# Console handler
console_handler = logging.StreamHandler(sys.stdout)

# Formatter
formatter = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
console_handler.setFormatter(formatter)

# Add handler
if not logger.handlers:
    logger.addHandler(console_handler)


def set_level(level: str) -> None:
    """Change the level of the shared logger (used by the CLI flags)."""
    logger.setLevel(level.upper())
