"""
Transactional session and executor abstraction.

Design notes
------------
- Repository code never holds a connection.  It asks the shared root
  ``Session`` for ``resolve_executor()``, which returns the transaction
  bound to the current context when there is one and the connection pool
  otherwise.  The binding lives in a ``ContextVar``, so it follows the
  asyncio task (and any task spawned from it) and never leaks into
  concurrent requests.
- ``do_transactionally`` owns the whole lifecycle of one transaction:
  begin, bind, run the unit of work, then exactly one of commit or
  rollback.  The connection is returned to the pool before it returns.
- Only one transaction may be bound per call chain.  Asking for another
  one while a transaction is bound raises ``NestedTransactionError``; there
  are no savepoints.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Iterator, Mapping, Protocol, Sequence, TypeVar

from sqlalchemy import MetaData, Row, TextClause, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from conduit.db.errors import NestedTransactionError, NoActiveTransactionError, TransactionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Statement = str | TextClause
Params = Mapping[str, Any]

_current_transaction: ContextVar["Session | None"] = ContextVar(
    "current_transaction", default=None
)


def _as_clause(statement: Statement) -> TextClause:
    return text(statement) if isinstance(statement, str) else statement


def current_transaction() -> "Session | None":
    """Return the transactional session bound to the current context, if any."""
    return _current_transaction.get()


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------

class Executor(Protocol):
    """What repositories need from a connection: run a statement or a query."""

    async def execute(self, statement: Statement, params: Params | None = None) -> int:
        ...

    async def query(self, statement: Statement, params: Params | None = None) -> Sequence[Row]:
        ...

    async def query_one(self, statement: Statement, params: Params | None = None) -> Row | None:
        ...


class PoolExecutor:
    """Runs every statement on a pooled connection and commits it immediately."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def execute(self, statement: Statement, params: Params | None = None) -> int:
        async with self._engine.begin() as conn:
            result = await conn.execute(_as_clause(statement), dict(params or {}))
            return result.rowcount

    async def query(self, statement: Statement, params: Params | None = None) -> Sequence[Row]:
        async with self._engine.begin() as conn:
            result = await conn.execute(_as_clause(statement), dict(params or {}))
            return result.all()

    async def query_one(self, statement: Statement, params: Params | None = None) -> Row | None:
        async with self._engine.begin() as conn:
            result = await conn.execute(_as_clause(statement), dict(params or {}))
            return result.first()


class TransactionExecutor:
    """Runs statements on the connection that owns an open transaction."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def execute(self, statement: Statement, params: Params | None = None) -> int:
        result = await self._connection.execute(_as_clause(statement), dict(params or {}))
        return result.rowcount

    async def query(self, statement: Statement, params: Params | None = None) -> Sequence[Row]:
        result = await self._connection.execute(_as_clause(statement), dict(params or {}))
        return result.all()

    async def query_one(self, statement: Statement, params: Params | None = None) -> Row | None:
        result = await self._connection.execute(_as_clause(statement), dict(params or {}))
        return result.first()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class Session:
    """
    Owns either the connection pool (root session) or one open transaction.

    A root session is created once per process.  Transactional sessions
    come only from ``begin_transaction`` / ``do_transactionally`` and are
    closed by their single ``commit`` or ``rollback``.

    ``timeout`` is the per-call statement budget (seconds) applied by the
    query helpers; ``metadata`` is the schema used to name constraint
    violations for drivers that do not report constraint names.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        timeout: float = 0,
        metadata: MetaData | None = None,
        _connection: AsyncConnection | None = None,
        _transaction: AsyncTransaction | None = None,
    ) -> None:
        self.engine = engine
        self.timeout = timeout
        self.metadata = metadata
        self._connection = _connection
        self._transaction = _transaction
        if _connection is not None:
            self._executor: Executor = TransactionExecutor(_connection)
        else:
            self._executor = PoolExecutor(engine)

    def __repr__(self) -> str:
        kind = "transaction" if self._connection is not None else "pool"
        return f"<Session {kind} timeout={self.timeout}>"

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    @property
    def executor(self) -> Executor:
        """This session's own executor, ignoring any context binding."""
        return self._executor

    def resolve_executor(self) -> Executor:
        """Executor for the current context: bound transaction first, then our own."""
        bound = _current_transaction.get()
        if bound is not None:
            return bound.executor
        return self._executor

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    async def begin_transaction(self, *, isolation_level: str | None = None) -> "Session":
        """
        Start a transaction on a fresh pooled connection and wrap it in a child session.

        *isolation_level* (e.g. ``"SERIALIZABLE"``, ``"REPEATABLE READ"``) is set
        on that connection before ``BEGIN``; the engine default applies otherwise.
        The pool restores the default when the connection is returned.
        """
        if _current_transaction.get() is not None:
            raise NestedTransactionError(
                "session: a transaction is already active in this context"
            )

        try:
            connection = await self.engine.connect()
        except (SQLAlchemyError, OSError) as exc:
            raise TransactionError("session: failed to begin transaction") from exc
        try:
            if isolation_level is not None:
                connection = await connection.execution_options(isolation_level=isolation_level)
            transaction = await connection.begin()
        except (SQLAlchemyError, OSError) as exc:
            await connection.close()
            raise TransactionError("session: failed to begin transaction") from exc

        return Session(
            self.engine,
            timeout=self.timeout,
            metadata=self.metadata,
            _connection=connection,
            _transaction=transaction,
        )

    @contextmanager
    def activate(self) -> Iterator["Session"]:
        """Bind this transactional session to the current context for the block."""
        if self._transaction is None:
            raise NoActiveTransactionError("session: no active transaction to bind")
        token = _current_transaction.set(self)
        try:
            yield self
        finally:
            _current_transaction.reset(token)

    async def commit(self) -> None:
        if self._transaction is None:
            raise NoActiveTransactionError("session: no active transaction to commit")
        try:
            await self._transaction.commit()
        finally:
            await self._release()

    async def rollback(self) -> None:
        if self._transaction is None:
            raise NoActiveTransactionError("session: no active transaction to rollback")
        try:
            await self._transaction.rollback()
        finally:
            await self._release()

    async def _release(self) -> None:
        connection = self._connection
        self._transaction = None
        self._connection = None
        if connection is not None:
            await connection.close()

    async def do_transactionally(
        self,
        unit_of_work: Callable[["Session"], Awaitable[T]],
        *,
        isolation_level: str | None = None,
    ) -> T:
        """
        Run *unit_of_work* inside a new transaction and return its result.

        The unit of work receives the transactional session; repository
        calls made through any session resolve to it while it runs.
        *isolation_level* is passed to ``begin_transaction``.

        - success: commit; a failed commit raises ``TransactionError``.
        - any exception (including cancellation): rollback and re-raise the
          original exception.  A failing rollback is logged, not raised.
        """
        tx = await self.begin_transaction(isolation_level=isolation_level)
        try:
            with tx.activate():
                result = await unit_of_work(tx)
        except BaseException as exc:
            try:
                await tx.rollback()
            except Exception as rollback_exc:
                logger.error(
                    "session: failed to rollback transaction after error: %s (original error: %r)",
                    rollback_exc,
                    exc,
                )
            raise

        try:
            await tx.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise TransactionError("session: failed to commit transaction") from exc
        return result
