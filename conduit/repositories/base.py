"""Row-decoding and SQL-building helpers shared by the repositories."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Sequence


def as_datetime(value: Any) -> datetime:
    """
    Normalise a timestamp column to an aware ``datetime``.

    PostgreSQL drivers return ``datetime`` objects; SQLite returns the
    ``CURRENT_TIMESTAMP`` text form, which is UTC.
    """
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def values_clause(prefix: str, rows: Sequence[Sequence[Any]]) -> tuple[str, dict[str, Any]]:
    """
    Build a multi-row ``VALUES`` list with named binds.

    ``values_clause("t", [("a",), ("b",)])`` returns
    ``("(:t_0_0), (:t_1_0)", {"t_0_0": "a", "t_1_0": "b"})``.
    """
    groups: list[str] = []
    params: dict[str, Any] = {}
    for i, row in enumerate(rows):
        names = []
        for j, value in enumerate(row):
            name = f"{prefix}_{i}_{j}"
            names.append(f":{name}")
            params[name] = value
        groups.append(f"({', '.join(names)})")
    return ", ".join(groups), params


def unique_ids(ids: Iterable[int]) -> list[int]:
    """Deduplicate *ids* keeping first-seen order."""
    return list(dict.fromkeys(ids))
