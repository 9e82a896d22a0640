# Overview: Service-layer operations for order numbering.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import SequenceCounter

ORDER_SEQUENCE = "orders"


class SequenceError(Exception):
    """Raised when sequence operations fail."""
    pass


def next_number(name: str) -> int:
    """
    Allocate the next number of a named sequence (1, 2, 3, ...).

    The increment is a single UPDATE so two callers never read the same
    prior value on databases with row locking. The first allocation inserts
    the row; if another writer inserted it first we fall back to the UPDATE.

    Flushes but does not commit: the number belongs to the caller's
    transaction and is released if that transaction rolls back.
    """
    if not name:
        raise SequenceError("sequence name is required")

    stmt = (
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(value=SequenceCounter.value + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(SequenceCounter(name=name, value=1))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    db.session.flush()
    return int(
        db.session.query(SequenceCounter.value)
        .filter_by(name=name)
        .scalar()
    )


def current_number(name: str) -> int:
    """Last number handed out for a sequence (0 when none yet)."""
    value = db.session.query(SequenceCounter.value).filter_by(name=name).scalar()
    return int(value or 0)


def next_order_number() -> int:
    return next_number(ORDER_SEQUENCE)


def current_order_number() -> int:
    return current_number(ORDER_SEQUENCE)


def format_order_number(number: int | None) -> str:
    """Display form of an order number: 1 -> "0001"."""
    if not number or number <= 0:
        return "-"
    return f"{number:04d}"
