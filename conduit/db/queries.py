"""
Generic query helpers built on ``Session.resolve_executor``.

Every helper:

1. derives the effective deadline (``min(caller deadline, now + timeout)``)
   and fails fast if the caller's deadline has already passed;
2. resolves the executor for the current context (transaction if bound,
   pool otherwise);
3. runs the statement under ``asyncio.timeout_at``.

Driver ``IntegrityError`` is the only error translated here: it becomes a
``ConstraintViolation`` naming the violated constraint.  Everything else
propagates unchanged.
"""
from __future__ import annotations

import asyncio
import re
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import MetaData, PrimaryKeyConstraint, Row, UniqueConstraint
from sqlalchemy.exc import IntegrityError

from conduit.db.deadline import derive_deadline
from conduit.db.errors import ConstraintViolation, MultipleRowsFoundError, NoRowsFoundError
from conduit.db.session import Session, Statement

T = TypeVar("T")

# PostgreSQL: duplicate key value violates unique constraint "users_email_key"
_PG_CONSTRAINT_RE = re.compile(r'constraint "(?P<name>[^"]+)"')
# SQLite: UNIQUE constraint failed: users.email
_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w.,\s]+)")


# ---------------------------------------------------------------------------
# Constraint classification
# ---------------------------------------------------------------------------

def _driver_constraint_name(orig: BaseException | None) -> str | None:
    """Constraint name reported by the driver itself (asyncpg / psycopg)."""
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
        diag = getattr(candidate, "diag", None)
        if diag is not None and getattr(diag, "constraint_name", None):
            return diag.constraint_name
    return None


def _constraint_for_columns(
    metadata: MetaData | None, table_name: str, columns: tuple[str, ...]
) -> str | None:
    if metadata is None or table_name not in metadata.tables:
        return None
    table = metadata.tables[table_name]
    for constraint in table.constraints:
        if not isinstance(constraint, (UniqueConstraint, PrimaryKeyConstraint)):
            continue
        if tuple(c.name for c in constraint.columns) == columns and constraint.name:
            return str(constraint.name)
    return None


def classify_integrity_error(exc: IntegrityError, metadata: MetaData | None = None) -> ConstraintViolation:
    """Build a ``ConstraintViolation`` describing *exc*."""
    message = str(exc.orig) if exc.orig is not None else str(exc)

    name = _driver_constraint_name(exc.orig)
    if name is None:
        match = _PG_CONSTRAINT_RE.search(message)
        if match:
            name = match.group("name")
    if name is not None:
        return ConstraintViolation(message, constraint=name)

    match = _SQLITE_UNIQUE_RE.search(message)
    if match:
        qualified = [part.strip() for part in match.group("columns").split(",")]
        table_name = qualified[0].split(".", 1)[0]
        columns = tuple(part.split(".", 1)[-1] for part in qualified)
        return ConstraintViolation(
            message,
            constraint=_constraint_for_columns(metadata, table_name, columns),
            table=table_name,
            columns=columns,
        )
    return ConstraintViolation(message)


@contextmanager
def _translate_integrity_errors(session: Session) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        raise classify_integrity_error(exc, session.metadata) from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def execute_query(
    session: Session,
    statement: Statement,
    decode: Callable[[Row], T],
    /,
    **params: Any,
) -> list[T]:
    """
    Run *statement* and decode every returned row with *decode*.

    A decoding failure aborts the call with the decoder's exception.
    """
    deadline = derive_deadline(session.timeout)
    executor = session.resolve_executor()
    with _translate_integrity_errors(session):
        async with asyncio.timeout_at(deadline):
            rows = await executor.query(statement, params)
    return [decode(row) for row in rows]


async def execute_single_query(
    session: Session,
    statement: Statement,
    decode: Callable[[Row], T],
    /,
    *,
    strict: bool = False,
    **params: Any,
) -> T:
    """
    Run *statement* and return its first decoded row.

    Raises ``NoRowsFoundError`` on an empty result.  Extra rows are ignored
    unless *strict* is set, in which case ``MultipleRowsFoundError`` is
    raised.
    """
    results = await execute_query(session, statement, decode, **params)
    if not results:
        raise NoRowsFoundError()
    if strict and len(results) > 1:
        raise MultipleRowsFoundError(len(results))
    return results[0]


async def execute_delete_query(
    session: Session,
    statement: Statement,
    /,
    **params: Any,
) -> int:
    """
    Run a mutating *statement* and return the number of affected rows.

    Works for any write (INSERT, UPDATE, DELETE); ``execute_statement`` is
    the same helper under a name that reads better for inserts.
    """
    deadline = derive_deadline(session.timeout)
    executor = session.resolve_executor()
    with _translate_integrity_errors(session):
        async with asyncio.timeout_at(deadline):
            return await executor.execute(statement, params)


execute_statement = execute_delete_query
