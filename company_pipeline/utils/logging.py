"""
Logging setup shared by the batch script and the API.

Usage:
    from company_pipeline.utils.logging import configure_logging

    configure_logging("DEBUG")
"""
import sys

from loguru import logger

from company_pipeline.config import LOG_LEVEL


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Replace loguru's default handler with a compact stderr sink."""
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=level, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")
