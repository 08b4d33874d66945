"""
FamHub - Logger Configuration
Centralized logging with loguru
"""
import sys
from pathlib import Path
from loguru import logger

from famhub.config import settings


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(log_dir: str | None = None) -> None:
    """
    Install the console and file sinks.

    Safe to call more than once; existing sinks are replaced.

    Args:
        log_dir: Directory for app.log / error.log (defaults to settings.LOG_DIR)
    """
    logger.remove()

    logger.add(
        sys.stdout,
        colorize=True,
        format=CONSOLE_FORMAT,
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    )

    log_path = Path(log_dir or settings.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    # All logs
    logger.add(
        log_path / "app.log",
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="DEBUG",
    )

    # Errors only
    logger.add(
        log_path / "error.log",
        rotation="10 MB",
        retention="30 days",
        compression="gz",
        format=FILE_FORMAT,
        level="ERROR",
    )


__all__ = ["logger", "configure_logging"]
