"""Propagate the request id through the call stack using contextvars."""

import logging
from contextlib import contextmanager
from contextvars import ContextVar

_current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


def get_request_id() -> str | None:
    """Current request id, or None outside a request."""
    return _current_request_id.get()


def set_request_id(request_id: str) -> None:
    """
    Set current request id in context.

    Called by RequestIDMiddleware at the start of each request.
    """
    _current_request_id.set(request_id)


def clear_request_id() -> None:
    """
    Clear request context.

    Must be called in finally block to prevent context leakage.
    """
    _current_request_id.set(None)


@contextmanager
def request_context(request_id: str):
    """Temporarily set the request id (tests, background jobs)."""
    token = _current_request_id.set(request_id)
    try:
        yield
    finally:
        _current_request_id.reset(token)


class RequestIDFilter(logging.Filter):
    """Adds `request_id` to every log record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True
