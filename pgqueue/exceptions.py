"""
Queue error hierarchy.

Every store-facing operation wraps the underlying driver error in one of
these, chained via ``raise ... from``.
"""

from sqlalchemy.exc import SQLAlchemyError

# Errors that mean the store (or the route to it) failed
STORE_ERRORS = (SQLAlchemyError, OSError)


class QueueError(Exception):
    """Base class for all queue errors."""

    pass


class SchemaError(QueueError):
    """Raised when the store rejects schema DDL."""

    pass


class PublishError(QueueError):
    """Raised when a batch of messages could not be inserted."""

    pass


class DequeueError(QueueError):
    """Raised when claiming (or inspecting) queued messages fails."""

    pass


class AckError(QueueError):
    """Raised when acknowledged messages could not be deleted."""

    pass
