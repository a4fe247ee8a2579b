"""
Errors raised by the session / query-helper layer.

Nothing here is HTTP-aware; the service and router layers decide how each
kind is presented to clients.
"""
from __future__ import annotations


class DatabaseError(Exception):
    """Base class for errors raised by ``conduit.db``."""


class TransactionError(DatabaseError):
    """A transaction could not be started or committed."""


class NoActiveTransactionError(TransactionError):
    """Commit or rollback was requested on a session without a transaction."""


class NestedTransactionError(TransactionError):
    """A transaction was requested while one is already bound to the context."""


class NoRowsFoundError(DatabaseError):
    """A query that expected a row returned none."""

    def __init__(self, message: str = "no rows found") -> None:
        super().__init__(message)


class MultipleRowsFoundError(DatabaseError):
    """A strict single-row query returned more than one row."""

    def __init__(self, count: int) -> None:
        super().__init__(f"expected exactly one row, got {count}")
        self.count = count


class ConstraintViolation(DatabaseError):
    """
    A statement violated an integrity constraint.

    ``constraint`` is the stable constraint identifier (e.g.
    ``users_email_key``) when it could be determined.  The driver error is
    always available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        constraint: str | None = None,
        table: str | None = None,
        columns: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.constraint = constraint
        self.table = table
        self.columns = columns


class DeadlineExceeded(DatabaseError, TimeoutError):
    """The caller's deadline passed before the statement could be issued."""
