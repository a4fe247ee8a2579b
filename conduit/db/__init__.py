from conduit.db.deadline import current_deadline, deadline_after, derive_deadline
from conduit.db.errors import (
    ConstraintViolation,
    DatabaseError,
    DeadlineExceeded,
    MultipleRowsFoundError,
    NestedTransactionError,
    NoActiveTransactionError,
    NoRowsFoundError,
    TransactionError,
)
from conduit.db.queries import (
    execute_delete_query,
    execute_query,
    execute_single_query,
    execute_statement,
)
from conduit.db.session import (
    Executor,
    PoolExecutor,
    Session,
    TransactionExecutor,
    current_transaction,
)

__all__ = [
    "ConstraintViolation",
    "DatabaseError",
    "DeadlineExceeded",
    "Executor",
    "MultipleRowsFoundError",
    "NestedTransactionError",
    "NoActiveTransactionError",
    "NoRowsFoundError",
    "PoolExecutor",
    "Session",
    "TransactionError",
    "TransactionExecutor",
    "current_deadline",
    "current_transaction",
    "deadline_after",
    "derive_deadline",
    "execute_delete_query",
    "execute_query",
    "execute_single_query",
    "execute_statement",
]
