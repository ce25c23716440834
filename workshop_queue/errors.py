"""Error taxonomy for the queue engine.

``ValidationError`` and ``NotFoundError`` go straight back to the caller.
``ConflictError`` is retried internally and only surfaces when the retry
budget is spent. ``DependencyError`` means a collaborator failed and the
triggering transition was rolled back before the error was raised.
"""


class QueueError(Exception):
    """Base class for all queue engine errors."""


class ValidationError(QueueError):
    """Bad input, closed workshop, or a transition the entry cannot take."""


class NotFoundError(QueueError):
    """Unknown entry/customer/motorcycle, or an entry already in a terminal state."""


class ConflictError(QueueError):
    """A uniqueness invariant (code or position) could not be established."""


class DependencyError(QueueError):
    """A collaborator failed; in-memory state was rolled back."""


class WorkOrderCreationError(DependencyError):
    """The work-order collaborator failed while calling an entry."""


class PersistenceError(DependencyError):
    """The persistence collaborator failed after all retry attempts."""
