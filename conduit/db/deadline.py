"""
Caller deadlines carried through the current context.

A deadline is an absolute time on the running event loop's clock
(``loop.time()``).  The request middleware binds one per request with
``deadline_after``; the query helpers combine it with their own per-call
timeout through ``derive_deadline``.  Derived deadlines only ever shrink.
"""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from conduit.db.errors import DeadlineExceeded

_deadline_var: ContextVar[float | None] = ContextVar("caller_deadline", default=None)

_UNSET = object()


def current_deadline() -> float | None:
    """Return the deadline bound to the current context, if any."""
    return _deadline_var.get()


def _now() -> float:
    return asyncio.get_running_loop().time()


@contextmanager
def deadline_after(seconds: float) -> Iterator[float]:
    """
    Bind a deadline ``seconds`` from now for the duration of the block.

    An already bound deadline that is tighter is kept as is.
    """
    candidate = _now() + seconds
    existing = _deadline_var.get()
    deadline = candidate if existing is None else min(existing, candidate)
    token = _deadline_var.set(deadline)
    try:
        yield deadline
    finally:
        _deadline_var.reset(token)


def derive_deadline(
    timeout: float,
    *,
    now: float | None = None,
    caller_deadline: float | None | object = _UNSET,
) -> float | None:
    """
    Return the effective deadline for one database call.

    The result is ``min(caller_deadline, now + timeout)``; a non-positive
    *timeout* means "no per-call bound".  ``None`` means no deadline at all.

    Raises ``DeadlineExceeded`` when the caller deadline has already passed.
    """
    if now is None:
        now = _now()
    if caller_deadline is _UNSET:
        caller_deadline = _deadline_var.get()

    if caller_deadline is not None and caller_deadline - now <= 0:
        raise DeadlineExceeded("deadline exceeded before the statement was issued")

    if timeout <= 0:
        return caller_deadline
    own = now + timeout
    if caller_deadline is None:
        return own
    return min(caller_deadline, own)
