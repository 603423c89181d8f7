"""Logging configuration for server events."""
import logging
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE, LOG_LEVEL

FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging() -> logging.Logger:
    """Configure the shared server logger with a rotating file and the console."""
    logger = logging.getLogger("task_chat_server")
    logger.setLevel(LOG_LEVEL)
    if not logger.handlers:
        formatter = logging.Formatter(FORMAT, datefmt=DATEFMT)
        file_handler = RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
    return logger
