import logging
from logging.handlers import RotatingFileHandler

from s3tree import constants


def setup_logging(level: int = logging.DEBUG) -> None:
    """Configure rotating file logger for s3tree."""
    constants.LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        constants.LOG_FILE,
        maxBytes=constants.MAX_LOG_SIZE,
        backupCount=constants.LOG_BACKUP_COUNT,
    )
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s [%(name)s] %(threadName)s %(message)s")
    )
    root = logging.getLogger("s3tree")
    root.setLevel(level)
    root.addHandler(handler)
