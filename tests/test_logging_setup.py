"""Tests for the rotating log file setup."""

import logging
from logging.handlers import RotatingFileHandler

from s3tree import constants
from s3tree.logging_setup import setup_logging


def test_writes_to_log_file():
    logger = logging.getLogger("s3tree")
    before = list(logger.handlers)
    try:
        setup_logging(logging.INFO)
        added = [h for h in logger.handlers if h not in before]
        assert len(added) == 1
        handler = added[0]
        assert isinstance(handler, RotatingFileHandler)
        assert handler.maxBytes == constants.MAX_LOG_SIZE
        assert handler.backupCount == constants.LOG_BACKUP_COUNT

        logging.getLogger("s3tree.transfers").info("hello from the test")
        handler.flush()
        text = constants.LOG_FILE.read_text()
        assert "hello from the test" in text
        assert "[s3tree.transfers]" in text
    finally:
        for h in logger.handlers[:]:
            if h not in before:
                logger.removeHandler(h)
                h.close()
        logger.setLevel(logging.NOTSET)
