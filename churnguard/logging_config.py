"""JSON logging for the scoring engine and batch orchestrator."""

import logging
import os

from pythonjsonlogger import jsonlogger

LOG_LEVEL_ENV = "CHURNGUARD_LOG_LEVEL"

# Observer records add customer_id, strategy and feature fields via ``extra``
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s"


def get_logger(name: str) -> logging.Logger:
    """
    Return a ``churnguard`` logger that writes one JSON object per line.

    The handler is attached on first use only, so repeated calls (one per
    module) never duplicate output. Batch scoring logs from worker threads,
    hence the thread name in every record. The level comes from
    CHURNGUARD_LOG_LEVEL and defaults to INFO.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(os.environ.get(LOG_LEVEL_ENV, "INFO").upper())
    logger.propagate = False
    return logger
