from __future__ import annotations

from ..extensions import db
from crm.time_utils import to_utc_z, utcnow

ENTRY_TYPES = ("REVENUE", "EXPENSE")
ENTRY_STATUSES = ("PAID", "PENDING")
PAYMENT_METHODS = ("PIX", "CASH", "CREDIT", "DEBIT", "BOLETO", "TRANSFER", "OTHER")


class LedgerEntry(db.Model):
    """
    Financial ledger entry (revenue or expense).

    ORDER REVENUE: entries posted from orders carry `order_id`. The unique
    constraint guarantees at most one entry per order, whatever the number of
    status changes or reconciliation sweeps. `order_id` is not a foreign key:
    deleting an order leaves its revenue in place.

    PERIOD: `period` is the YYYY-MM of `posting_date`.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.UniqueConstraint("order_id", name="uq_ledger_entries_order"),
        db.Index("ix_ledger_entries_period_type", "period", "entry_type"),
        db.Index("ix_ledger_entries_posting_date", "posting_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    posting_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    period = db.Column(db.String(7), nullable=False)

    entry_type = db.Column(db.String(16), nullable=False, default="REVENUE")
    status = db.Column(db.String(16), nullable=False, default="PAID")

    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    payment_method = db.Column(db.String(16), nullable=False, default="PIX")
    amount_cents = db.Column(db.Integer, nullable=False)

    order_id = db.Column(db.Integer, nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<LedgerEntry id={self.id} type={self.entry_type} amount={self.amount_cents} order_id={self.order_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "posting_date": to_utc_z(self.posting_date),
            "period": self.period,
            "entry_type": self.entry_type,
            "status": self.status,
            "description": self.description,
            "category": self.category,
            "payment_method": self.payment_method,
            "amount_cents": self.amount_cents,
            "order_id": self.order_id,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
