import logging

from ..config import Settings


def configure_logging(settings: Settings) -> logging.Logger:
    logger = logging.getLogger("dining")
    logger.setLevel(settings.log_level)
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(console_handler)
    return logger
