# Overview: Service-layer operations for inventory; moves product stock when orders change status.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Order, Product, StockMovement
from ..models.catalog import STOCK_DIRECTIONS
from crm.time_utils import utcnow
"""
Inventory Invariants (authoritative)

- Product.stock is a mutable counter that never goes below zero; every
  adjustment clamps at 0.
- Only order lines with a product_id touch stock. Free-text lines and lines
  whose product no longer exists are skipped without error.
- Each touched product gets a StockMovement row in the same transaction.
- Adjustments are best-effort per line: a database error on one line is
  rolled back to its savepoint, logged, and the remaining lines still apply.
- When to call: DEDUCT once when an order enters PAID/SHIPPED/DELIVERED,
  RETURN once when it is cancelled or deleted. The order's stock_deducted
  flag (owned by the order service) is what makes each call happen once.
"""

DEDUCT = "DEDUCT"
RETURN = "RETURN"

STOCK_DEDUCTING_STATUSES = frozenset({"PAID", "SHIPPED", "DELIVERED"})
STOCK_RETURNING_STATUSES = frozenset({"CANCELLED"})


def should_deduct_stock(status: str) -> bool:
    return status in STOCK_DEDUCTING_STATUSES


def should_return_stock(status: str) -> bool:
    return status in STOCK_RETURNING_STATUSES


def _apply_delta(current: int, quantity: int, direction: str) -> int:
    if direction == DEDUCT:
        return max(0, current - quantity)
    return max(0, current + quantity)


def adjust_stock(order: Order, direction: str) -> list[Product]:
    """
    Deduct or return the stock of every catalog line on an order.

    Returns the products that were changed. Does not commit; the caller owns
    the transaction.
    """
    if direction not in STOCK_DIRECTIONS:
        raise ValueError(f"invalid stock direction: {direction}")

    touched: list[Product] = []

    for line in order.lines:
        if not line.product_id:
            continue

        try:
            with db.session.begin_nested():
                product = db.session.query(Product).filter_by(id=line.product_id).first()
                if product is None:
                    continue

                quantity = max(0, line.quantity or 0)
                before = product.stock or 0
                after = _apply_delta(before, quantity, direction)

                product.stock = after
                product.updated_at = utcnow()

                db.session.add(StockMovement(
                    product_id=product.id,
                    order_id=order.id,
                    direction=direction,
                    quantity=quantity,
                    stock_before=before,
                    stock_after=after,
                    note=f"Order #{order.number:04d}" if order.number else None,
                    occurred_at=utcnow(),
                ))
                touched.append(product)
        except StaleDataError:
            raise
        except SQLAlchemyError:
            current_app.logger.warning(
                "Skipped stock %s for product %s on order %s",
                direction.lower(), line.product_id, order.id,
                exc_info=True,
            )

    return touched


def list_movements(
    product_id: int | None = None,
    order_id: int | None = None,
    limit: int = 100,
) -> list[StockMovement]:
    """Stock movements, newest first."""
    q = db.session.query(StockMovement)
    if product_id is not None:
        q = q.filter(StockMovement.product_id == product_id)
    if order_id is not None:
        q = q.filter(StockMovement.order_id == order_id)

    return (
        q.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(max(1, min(limit, 500)))
        .all()
    )
