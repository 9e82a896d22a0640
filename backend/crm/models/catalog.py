from __future__ import annotations

from ..extensions import db
from crm.time_utils import to_utc_z, utcnow

PRODUCT_CATEGORIES = ("MALE", "FEMALE", "UNISEX")
STOCK_DIRECTIONS = ("DEDUCT", "RETURN")


class Product(db.Model):
    """
    Catalog product with a mutable physical stock count.

    STOCK: `stock` is the physical count and `reserved` the quantity promised
    but not yet shipped. Both are clamped at zero; order transitions move
    `stock` through the inventory service and record a StockMovement.

    DELETION: Order lines keep a plain product_id (no foreign key), so a
    product can be deleted while historical orders still mention it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    brand = db.Column(db.String(128), nullable=True)
    category = db.Column(db.String(16), nullable=True)
    volume_ml = db.Column(db.Integer, nullable=True)

    # Authoritative storage in cents
    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    reserved = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def available(self) -> int:
        return max(0, (self.stock or 0) - (self.reserved or 0))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "volume_ml": self.volume_ml,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "stock": self.stock,
            "reserved": self.reserved,
            "available": self.available,
            "is_active": self.is_active,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only record of every stock change caused by an order.

    WHY: Product.stock is a mutable counter; movements keep the history that
    explains how it got there (deductions and returns per order).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False)
    order_id = db.Column(db.Integer, nullable=True, index=True)

    direction = db.Column(db.String(16), nullable=False)  # DEDUCT, RETURN
    quantity = db.Column(db.Integer, nullable=False)
    stock_before = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "order_id": self.order_id,
            "direction": self.direction,
            "quantity": self.quantity,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
