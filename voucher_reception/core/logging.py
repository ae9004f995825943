import sys

from loguru import logger

from .config import settings

# Keyword arguments passed to logger calls land in {extra}
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level> {extra}"
)


def setup_logging(level: str | None = None):
    """Replace loguru's default stderr sink with one at LOG_LEVEL"""
    level = (level or settings.log_level).upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logger.info("Logging configured", level=level, app_env=settings.app_env)
    return logger
