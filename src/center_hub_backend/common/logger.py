'''
universal logger
'''
import logging
import sys

from .config import settings

# Third-party loggers that are noisy at INFO.
QUIET_LOGGERS = ("passlib", "aiosqlite", "sqlalchemy.engine")

def setup_logger(level_name: str) -> logging.Logger:
    """
    Configures the application logger once. Every module imports `log`.
    """
    logger = logging.getLogger('CH-backend')
    logger.setLevel(level_name.upper())
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(module)-18s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger

log = setup_logger(settings.LOG_LEVEL)
