"""Correlation IDs for store writes.

Every write entry point of the appointment store runs inside a
``request_scope()``, so the availability check, the status transition and
the store write of one booking attempt share a ``REQ-xxxxxxxx`` id in the
log. The handler installed by ``load_config()`` carries a
``RequestIdFilter`` and prints the id in its format string.

Usage:
    from slotbook.logging_context import get_request_logger, request_scope

    logger = get_request_logger(__name__)
    with request_scope():
        logger.info("Creating appointment")  # record.request_id == "REQ-1a2b3c4d"
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST_ID = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def new_request_id() -> str:
    return f"REQ-{uuid.uuid4().hex[:8]}"


def set_request_id(request_id: str) -> None:
    """Set the correlation ID for the current context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current correlation ID."""
    return _request_id.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Run a block under a correlation ID, restoring the previous one on exit.

    Without an explicit ``request_id`` an enclosing scope's id is reused,
    so ``cancel_appointment`` calling ``change_status`` logs one id.
    """
    if request_id is None and _request_id.get() != NO_REQUEST_ID:
        yield _request_id.get()
        return
    token = _request_id.set(request_id or new_request_id())
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Return a logger with the RequestIdFilter attached.

    Records keep their ``request_id`` even when they reach a handler that
    was not set up by ``load_config()``, such as pytest's ``caplog``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
