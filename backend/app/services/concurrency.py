# Overview: Service-layer helpers for concurrency; conditional (compare-and-swap) writes.

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import update

from ..extensions import db


def _condition(column, expected: Any):
    if expected is None:
        return column.is_(None)
    if isinstance(expected, (set, frozenset, list, tuple)):
        return column.in_(sorted(expected))
    return column == expected


def compare_and_swap(model, *, pk: int, expected: dict[str, Any], values: dict[str, Any]) -> int:
    """
    Apply `values` to one row only if it still matches `expected`.

    Issues a single UPDATE ... WHERE id = :pk AND <expected> statement, so the
    database decides atomically whether the row still matches. Returns the
    number of rows changed (0 or 1); 0 means another writer got there first.

    Expected values may be a scalar (equality), None (IS NULL) or a
    collection (IN). Models with a version_id column get it bumped.

    NOTE: Runs inside the caller's transaction and does not commit. The
    session's identity map is not synchronized; callers should expire any
    loaded instance of the row afterwards.
    """
    conditions = [model.id == pk]
    for name, value in expected.items():
        conditions.append(_condition(getattr(model, name), value))

    values = dict(values)
    if "version_id" in model.__table__.c:
        values["version_id"] = model.version_id + 1

    stmt = (
        update(model)
        .where(*conditions)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def decrement_if_available(model, *, pk: int, column: str, amount: int, extra: Iterable = ()) -> int:
    """
    Atomically subtract `amount` from a counter column without letting it go negative.

    Returns rows changed (0 when the counter held less than `amount`).
    """
    counter = getattr(model, column)
    stmt = (
        update(model)
        .where(model.id == pk, counter >= amount, *extra)
        .values({column: counter - amount})
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount
