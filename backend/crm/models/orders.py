from __future__ import annotations

from ..extensions import db
from crm.time_utils import to_utc_z, utcnow

ORDER_STATUSES = ("DRAFT", "AWAITING_PAYMENT", "PAID", "SHIPPED", "DELIVERED", "CANCELLED")
ORDER_ORIGINS = ("INSTAGRAM", "FACEBOOK", "WHATSAPP", "REFERRAL", "WEBSITE", "OTHER")


class Order(db.Model):
    """
    Customer order.

    NUMBERING: `number` is the human-readable sequence (#0001, #0002, ...)
    minted by the sequence service; `id` stays the opaque key.

    STOCK FLAG: `stock_deducted` is True exactly while a deduction has been
    applied and not returned. It is the only guard against deducting or
    returning the same order twice.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_orders_number"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.Integer, nullable=False)

    lead_id = db.Column(db.Integer, nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    origin = db.Column(db.String(16), nullable=False, default="OTHER")

    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(24), nullable=False, default="DRAFT", index=True)
    payment_method = db.Column(db.String(16), nullable=True)
    stock_deducted = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def subtotal_cents(self) -> int:
        return sum(max(0, line.quantity or 0) * max(0, line.unit_price_cents or 0) for line in self.lines)

    @property
    def total_cents(self) -> int:
        return max(0, self.subtotal_cents - (self.discount_cents or 0) + (self.shipping_cents or 0))

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.number} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "number_display": f"{self.number:04d}" if self.number else None,
            "lead_id": self.lead_id,
            "customer_name": self.customer_name,
            "phone": self.phone,
            "origin": self.origin,
            "discount_cents": self.discount_cents,
            "shipping_cents": self.shipping_cents,
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_method": self.payment_method,
            "stock_deducted": self.stock_deducted,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Line item on an order. `name` is a snapshot taken when the order was placed."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=1)

    # Catalog reference; free-text items have none and never touch stock
    product_id = db.Column(db.Integer, nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    @property
    def line_total_cents(self) -> int:
        return max(0, self.quantity or 0) * max(0, self.unit_price_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "position": self.position,
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class SequenceCounter(db.Model):
    """
    Named monotonically increasing counters.

    `value` is the last number handed out; 0 (or no row) means none yet.
    """
    __tablename__ = "sequence_counters"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_sequence_counters_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
