"""
Logger Setup
-----------
Centralized logging configuration using loguru.
Provides structured logging with proper formatting and rotation.
"""

import sys
from typing import Optional

from loguru import logger

from smartrack.core.config_manager import ApplicationSettings, settings


def configure_logger(app_settings: Optional[ApplicationSettings] = None) -> None:
    """
    Configure loguru logger with appropriate settings.
    Removes default handler and adds custom formatted handler.

    Args:
        app_settings: Settings to configure from, defaults to the global settings
    """
    app_settings = app_settings or settings

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stdout,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=app_settings.log_level,
        colorize=True,
        backtrace=True,
        diagnose=app_settings.debug,
    )

    # File handler for production
    if not app_settings.debug:
        logger.add(
            "logs/smartrack_{time:YYYY-MM-DD}.log",
            rotation="500 MB",
            retention="10 days",
            level=app_settings.log_level,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} | {message}"
            ),
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logger configured with level: {app_settings.log_level}")
