# Overview: Service-layer operations for the financial ledger; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import LedgerEntry, Order
from ..models.ledger import ENTRY_STATUSES, ENTRY_TYPES, PAYMENT_METHODS
from ..validation import ValidationError, enforce_amount, enforce_choice
from .sequence_service import format_order_number
from crm.time_utils import to_period, utcnow
"""
Ledger Invariants (authoritative)

- At most one entry per originating order (order_id). Checked before insert
  and backed by a unique constraint, so repeated PAID transitions, retries and
  reconciliation sweeps can never post revenue twice.
- Orders with a total <= 0 are never posted.
- Order revenue is never removed by order logic: cancelling or deleting an
  order leaves its entry in place.
- period is always the YYYY-MM of posting_date.
"""

DEFAULT_PAYMENT_METHOD = "PIX"
SALES_CATEGORY = "Sales"


class LedgerError(Exception):
    """Raised for ledger operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class LedgerNotFoundError(LedgerError):
    """Raised when a ledger entry id does not exist."""


def order_total_cents(order: Order) -> int:
    """max(0, sum(quantity * unit price) - discount + shipping)"""
    return order.total_cents


def order_revenue_description(order: Order) -> str:
    code = format_order_number(order.number) if order.number else str(order.id)[-6:]
    base = f"Sale - Order #{code}"
    return f"{base} - {order.customer_name}" if order.customer_name else base


def get_entry_for_order(order_id: int) -> LedgerEntry | None:
    return db.session.query(LedgerEntry).filter_by(order_id=order_id).first()


def post_revenue_for_order(order: Order, payment_method: str | None = None) -> LedgerEntry | None:
    """
    Post the revenue of an order, once.

    Returns the new entry, or None when nothing was posted (entry already
    exists, or total <= 0). Does not commit.
    """
    if get_entry_for_order(order.id) is not None:
        return None

    total = order_total_cents(order)
    if total <= 0:
        return None

    method = enforce_choice(
        "payment_method",
        payment_method or order.payment_method or DEFAULT_PAYMENT_METHOD,
        PAYMENT_METHODS,
    )
    posting_date = order.updated_at or order.created_at or utcnow()

    entry = LedgerEntry(
        posting_date=posting_date,
        period=to_period(posting_date),
        entry_type="REVENUE",
        status="PAID",
        description=order_revenue_description(order),
        category=SALES_CATEGORY,
        payment_method=method,
        amount_cents=total,
        order_id=order.id,
        customer_name=order.customer_name,
        notes=f"Order from {order.customer_name}" if order.customer_name else None,
    )

    # A concurrent handler may have posted between our check and this insert
    try:
        with db.session.begin_nested():
            db.session.add(entry)
    except IntegrityError:
        return None

    return entry


def reconcile_paid_orders() -> list[LedgerEntry]:
    """
    Reconciliation sweep: post revenue for every PAID order that has none.

    Safe to run any number of times. Commits when something was posted.
    """
    missing = (
        db.session.query(Order)
        .outerjoin(LedgerEntry, LedgerEntry.order_id == Order.id)
        .filter(Order.status == "PAID", LedgerEntry.id.is_(None))
        .order_by(Order.number.asc())
        .all()
    )

    posted = []
    for order in missing:
        entry = post_revenue_for_order(order)
        if entry is not None:
            posted.append(entry)

    if posted:
        db.session.commit()
        current_app.logger.info(
            "Reconciliation posted %d missing revenue entr%s",
            len(posted), "y" if len(posted) == 1 else "ies",
        )
    return posted


def create_entry(
    *,
    entry_type: str,
    description: str,
    amount_cents: int,
    status: str = "PAID",
    payment_method: str | None = None,
    category: str | None = None,
    posting_date: datetime | None = None,
    customer_name: str | None = None,
    notes: str | None = None,
) -> LedgerEntry:
    """Create a manual revenue or expense entry (not linked to an order)."""
    entry_type = enforce_choice("entry_type", entry_type, ENTRY_TYPES)
    status = enforce_choice("status", status, ENTRY_STATUSES)
    method = enforce_choice("payment_method", payment_method or DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS)

    description = (description or "").strip()
    if not description:
        raise ValidationError("description is required")
    if amount_cents is None:
        raise ValidationError("amount_cents is required")
    enforce_amount("amount_cents", amount_cents, allow_zero=False)

    posting_date = posting_date or utcnow()

    entry = LedgerEntry(
        posting_date=posting_date,
        period=to_period(posting_date),
        entry_type=entry_type,
        status=status,
        description=description,
        category=(category or "").strip() or None,
        payment_method=method,
        amount_cents=amount_cents,
        customer_name=(customer_name or "").strip() or None,
        notes=(notes or "").strip() or None,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def list_entries(
    *,
    period: str | None = None,
    entry_type: str | None = None,
    status: str | None = None,
    q: str | None = None,
    limit: int = 500,
) -> list[LedgerEntry]:
    """Ledger entries, newest posting first."""
    query = db.session.query(LedgerEntry)
    if period:
        query = query.filter(LedgerEntry.period == period)
    if entry_type:
        query = query.filter(LedgerEntry.entry_type == enforce_choice("entry_type", entry_type, ENTRY_TYPES))
    if status:
        query = query.filter(LedgerEntry.status == enforce_choice("status", status, ENTRY_STATUSES))
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(
            db.or_(
                LedgerEntry.description.ilike(like),
                LedgerEntry.customer_name.ilike(like),
                LedgerEntry.category.ilike(like),
            )
        )

    return (
        query.order_by(LedgerEntry.posting_date.desc(), LedgerEntry.id.desc())
        .limit(max(1, min(limit, 1000)))
        .all()
    )


def delete_entry(entry_id: int) -> None:
    entry = db.session.query(LedgerEntry).filter_by(id=entry_id).first()
    if entry is None:
        raise LedgerNotFoundError("Ledger entry not found")
    db.session.delete(entry)
    db.session.commit()


def period_summary(period: str | None = None) -> dict:
    """
    Totals for one accounting period (all periods when None).

    balance = paid revenue - paid expenses; pending amounts are reported
    separately and do not affect the balance.
    """
    query = db.session.query(
        LedgerEntry.entry_type,
        LedgerEntry.status,
        func.coalesce(func.sum(LedgerEntry.amount_cents), 0),
        func.count(LedgerEntry.id),
    )
    if period:
        query = query.filter(LedgerEntry.period == period)

    totals = {(t, s): (int(amount), int(count)) for t, s, amount, count in query.group_by(
        LedgerEntry.entry_type, LedgerEntry.status
    ).all()}

    def _amount(t: str, s: str) -> int:
        return totals.get((t, s), (0, 0))[0]

    revenue_paid = _amount("REVENUE", "PAID")
    expense_paid = _amount("EXPENSE", "PAID")

    return {
        "period": period,
        "revenue_paid_cents": revenue_paid,
        "expense_paid_cents": expense_paid,
        "balance_cents": revenue_paid - expense_paid,
        "revenue_pending_cents": _amount("REVENUE", "PENDING"),
        "expense_pending_cents": _amount("EXPENSE", "PENDING"),
        "entry_count": sum(count for _, count in totals.values()),
    }
