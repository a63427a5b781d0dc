"""
Logging setup for the Excel Analytics API.

Called once from app.main at import time; every other module just does
``logger = logging.getLogger(__name__)``.
"""

import logging
import sys

from app.config import settings

_NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "sqlalchemy.engine", "multipart")


def setup_logging() -> None:
    """Configure the root logger with a single console handler."""
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if settings.DEBUG:
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"
    else:
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    console_handler.setFormatter(logging.Formatter(fmt))
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if not settings.DEBUG:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging initialised at level %s", settings.LOG_LEVEL.upper())
