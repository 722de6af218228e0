"""Logging configuration for Aislewise using loguru."""
import sys
from pathlib import Path
from loguru import logger

from aislewise.config.settings import get_settings

settings = get_settings()

# Remove default handler
logger.remove()

# Define log format based on settings
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "<level>{extra}</level>"
) if settings.LOG_FORMAT == "detailed" else (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)

# Records logged without get_logger() still carry a name
logger.configure(extra={"name": "aislewise"})

# Add console handler with color
logger.add(
    sys.stderr,
    format=LOG_FORMAT,
    level=settings.LOG_LEVEL,
    colorize=True,
    backtrace=True,
    diagnose=True,
)

# Add file handler with rotation
if settings.LOG_FILE:
    Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        settings.LOG_FILE,
        format=LOG_FORMAT,
        level=settings.LOG_LEVEL,
        rotation=f"{settings.LOG_ROTATION_SIZE_MB} MB",
        retention=f"{settings.LOG_RETENTION_DAYS} days",
        compression="zip",
        serialize=True,
        backtrace=True,
        diagnose=True,
        enqueue=True,  # Thread-safe logging
    )


def get_logger(name: str):
    """Get a logger instance with the given name.

    Args:
        name: The name of the module/component requesting the logger.
            Should be the module's __name__ attribute or a class name.

    Returns:
        A logger instance bound with the given name.
    """
    if not name.startswith("aislewise") and name != "__main__":
        name = f"aislewise.{name}"
    return logger.bind(name=name)
