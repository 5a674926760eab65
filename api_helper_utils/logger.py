# api_helper_utils/logger.py - shared logger factory
import logging

from api_helper_utils import settings


def get_logger(name: str = "api-helper"):
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(settings.LOG_LEVEL)
    return logger
