"""Process-wide logging setup."""

import logging

from utils.request_context import RequestIDFilter

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach one stream handler to the root logger. Safe to call repeatedly."""
    logger = logging.getLogger()
    if not any(isinstance(f, RequestIDFilter) for h in logger.handlers for f in h.filters):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIDFilter())
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
