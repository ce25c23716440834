"""Correlation ID logging context for tracing queue operations.

Every mutating queue operation (join, call, serve, cancel...) runs under
its own operation id. The id is attached to every log record emitted
while that operation is in flight, so one customer's admission can be
followed through the store, the ticket generator and the collaborators.

Usage:
    from workshop_queue.logging_context import get_queue_logger, set_operation_id

    set_operation_id("OP-3f2a9c")
    logger = get_queue_logger(__name__)
    logger.info("Calling next entry")  # record.operation_id == "OP-3f2a9c"
"""

import logging
import uuid
from contextvars import ContextVar

_operation_id: ContextVar[str] = ContextVar("operation_id", default="NO_OPERATION")


def new_operation_id(prefix: str = "OP") -> str:
    """Create and install a fresh operation id for the current async context."""
    op_id = f"{prefix}-{uuid.uuid4().hex[:8]}"
    _operation_id.set(op_id)
    return op_id


def set_operation_id(operation_id: str) -> None:
    """Set the correlation ID for the current async context."""
    _operation_id.set(operation_id)


def get_operation_id() -> str:
    """Retrieve the current correlation ID."""
    return _operation_id.get()


class OperationIdFilter(logging.Filter):
    """Injects operation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.operation_id = _operation_id.get()  # type: ignore[attr-defined]
        return True


def get_queue_logger(name: str) -> logging.Logger:
    """Return a logger with the OperationIdFilter attached.

    The filter adds ``operation_id`` to each record so formatters can
    include ``%(operation_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, OperationIdFilter) for f in logger.filters):
        logger.addFilter(OperationIdFilter())
    return logger
