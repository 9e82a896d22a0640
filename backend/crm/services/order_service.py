"""
Order Service - order lifecycle coordinator

WHY: Creating, re-statusing and deleting an order each touch several
records (order, product stock, revenue ledger, originating lead). The
policy for which side effects a status change triggers lives in one place,
plan_transition(), and every operation applies it the same way.

STATUS MODEL: DRAFT, AWAITING_PAYMENT, PAID, SHIPPED, DELIVERED, CANCELLED.
Any status may follow any other; nothing is rejected as an invalid
transition. Side effects depend only on the resulting status and the
order's stock_deducted flag.

TRANSACTIONS: each operation validates first, then performs all writes and
commits once. Concurrency conflicts are retried by run_with_retry.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Lead, Order, OrderLine, Product
from ..models.ledger import PAYMENT_METHODS
from ..models.orders import ORDER_ORIGINS, ORDER_STATUSES
from ..validation import ValidationError, enforce_amount, enforce_choice, is_valid_phone
from crm.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import DEDUCT, RETURN, adjust_stock, should_deduct_stock, should_return_stock
from .lead_service import items_from_lead, sync_lead_from_order
from .ledger_service import post_revenue_for_order
from .sequence_service import next_order_number

LEAD_STATUS_BY_ORDER_STATUS = {
    "PAID": "PAID",
    "SHIPPED": "SHIPPED",
    "DELIVERED": "COMPLETED",
    "CANCELLED": "LOST",
}

ORDER_DETAIL_FIELDS = {"customer_name", "phone", "origin", "notes"}


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderValidationError(OrderError):
    """Input rejected before any write."""


class OrderNotFoundError(OrderError):
    """Order (or a record it needs) does not exist."""


@dataclass(frozen=True)
class TransitionPlan:
    deduct_stock: bool = False
    return_stock: bool = False
    post_revenue: bool = False
    lead_status: str | None = None


def plan_transition(old_status: str | None, new_status: str, stock_deducted: bool) -> TransitionPlan:
    """
    Side effects of moving an order from old_status (None on creation) to
    new_status.

    - stock is deducted on entering PAID/SHIPPED/DELIVERED unless already deducted
    - stock is returned on entering CANCELLED if it was deducted
    - revenue is posted whenever the order is (re)set to PAID; posting itself is idempotent
    - the lead follows PAID/SHIPPED/DELIVERED/CANCELLED
    """
    if old_status is not None and old_status not in ORDER_STATUSES:
        raise OrderValidationError(f"Unknown order status: {old_status}")
    if new_status not in ORDER_STATUSES:
        raise OrderValidationError(f"Unknown order status: {new_status}")

    return TransitionPlan(
        deduct_stock=should_deduct_stock(new_status) and not stock_deducted,
        return_stock=should_return_stock(new_status) and stock_deducted,
        post_revenue=new_status == "PAID",
        lead_status=LEAD_STATUS_BY_ORDER_STATUS.get(new_status),
    )


def _choice(name: str, value, choices) -> str | None:
    try:
        return enforce_choice(name, value, choices)
    except ValidationError as e:
        raise OrderValidationError(str(e))


def _to_int(name: str, value, default: int = 0) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise OrderValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise OrderValidationError(f"{name} must be an integer")


def _to_amount(name: str, value) -> int:
    amount = max(0, _to_int(name, value))
    try:
        enforce_amount(name, amount)
    except ValidationError as e:
        raise OrderValidationError(str(e))
    return amount


def _validate_customer(customer_name: str | None, phone: str | None) -> None:
    if not (customer_name or "").strip():
        raise OrderValidationError("Customer name is required")
    if not is_valid_phone(phone):
        raise OrderValidationError("Phone must include area code (at least 10 digits)")


def _normalize_items(items: list[dict]) -> list[dict]:
    """
    Clean line items: trimmed name, quantity >= 1, price >= 0.

    A catalog item without a name takes the product's name, and its sale
    price unless one was given.
    """
    normalized = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise OrderValidationError(f"Item {index} must be an object")

        product_id = raw.get("product_id") or None
        if product_id is not None:
            product_id = _to_int("product_id", product_id)

        name = str(raw.get("name") or "").strip()
        quantity = max(1, _to_int("quantity", raw.get("quantity"), default=1))
        unit_price_cents = _to_amount("unit_price_cents", raw.get("unit_price_cents"))

        if product_id is not None:
            product = db.session.query(Product).filter_by(id=product_id).first()
            if product is None:
                raise OrderValidationError("Product not found", details={"item": index, "product_id": product_id})
            if not name:
                name = product.name
                if raw.get("unit_price_cents") in (None, ""):
                    unit_price_cents = product.sale_price_cents or 0

        if not name:
            raise OrderValidationError(f"Item {index} needs a name", details={"item": index})

        normalized.append({
            "product_id": product_id,
            "name": name,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
        })
    return normalized


def _apply_plan(order: Order, plan: TransitionPlan, payment_method: str | None = None) -> None:
    if plan.deduct_stock:
        adjust_stock(order, DEDUCT)
        order.stock_deducted = True

    if plan.return_stock:
        adjust_stock(order, RETURN)
        order.stock_deducted = False

    if plan.post_revenue:
        post_revenue_for_order(order, payment_method)

    sync_lead_from_order(order, plan.lead_status)


def _load_order_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise OrderNotFoundError("Order not found")
    return order


def create_order(
    *,
    customer_name: str,
    phone: str,
    items: list[dict] | None = None,
    discount_cents: int = 0,
    shipping_cents: int = 0,
    status: str = "DRAFT",
    lead_id: int | None = None,
    origin: str | None = None,
    notes: str | None = None,
    payment_method: str | None = None,
) -> Order:
    """
    Create an order, numbered by the order sequence.

    If the initial status already deducts stock or is PAID, the same side
    effects as a later status change are applied before commit.
    """
    def _op():
        new_status = _choice("status", status or "DRAFT", ORDER_STATUSES)
        method = _choice("payment_method", payment_method, PAYMENT_METHODS)

        lead = None
        if lead_id is not None:
            lead = db.session.query(Lead).filter_by(id=lead_id).first()
            if lead is None:
                raise OrderValidationError("Lead not found", details={"lead_id": lead_id})

        raw_items = list(items or [])
        if not raw_items and lead is not None:
            raw_items = items_from_lead(lead)

        name = str(customer_name or "").strip()
        phone_number = str(phone or "").strip()
        _validate_customer(name, phone_number)
        if not raw_items:
            raise OrderValidationError("Add at least one item")

        lines = _normalize_items(raw_items)
        discount = _to_amount("discount_cents", discount_cents)
        shipping = _to_amount("shipping_cents", shipping_cents)
        order_origin = _choice("origin", origin or (lead.origin if lead else None) or "OTHER", ORDER_ORIGINS)

        plan = plan_transition(None, new_status, stock_deducted=False)

        now = utcnow()
        order = Order(
            number=next_order_number(),
            lead_id=lead.id if lead else None,
            customer_name=name,
            phone=phone_number,
            origin=order_origin,
            discount_cents=discount,
            shipping_cents=shipping,
            status=new_status,
            payment_method=method,
            stock_deducted=False,
            notes=(notes or "").strip() or None,
            created_at=now,
            updated_at=now,
        )
        for position, item in enumerate(lines, start=1):
            order.lines.append(OrderLine(position=position, **item))

        db.session.add(order)
        db.session.flush()

        _apply_plan(order, plan, payment_method=method)

        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order_status(order_id: int, new_status: str, payment_method: str | None = None) -> Order:
    """
    Set an order's status and apply the inventory, revenue and lead effects.

    Repeating the same status is harmless: the stock flag and the one-entry-
    per-order ledger rule make the effects happen once.
    """
    def _op():
        status = _choice("status", new_status, ORDER_STATUSES)
        method = _choice("payment_method", payment_method, PAYMENT_METHODS)

        order = _load_order_locked(order_id)
        plan = plan_transition(order.status, status, order.stock_deducted)

        order.status = status
        order.updated_at = utcnow()
        if method:
            order.payment_method = method

        _apply_plan(order, plan, payment_method=method)

        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order_details(order_id: int, patch: dict) -> Order:
    """Edit customer name, phone, origin or notes."""
    if not isinstance(patch, dict):
        raise OrderValidationError("Invalid JSON payload")
    unknown = sorted(set(patch) - ORDER_DETAIL_FIELDS)
    if unknown:
        raise OrderValidationError(f"Field not allowed: {', '.join(unknown)}")

    def _op():
        order = _load_order_locked(order_id)

        customer_name = str(patch.get("customer_name", order.customer_name) or "").strip()
        phone = str(patch.get("phone", order.phone) or "").strip()
        _validate_customer(customer_name, phone)

        order.customer_name = customer_name
        order.phone = phone
        if "origin" in patch:
            order.origin = _choice("origin", patch["origin"] or "OTHER", ORDER_ORIGINS)
        if "notes" in patch:
            order.notes = (patch["notes"] or "").strip() or None
        order.updated_at = utcnow()

        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int) -> None:
    """
    Delete an order, returning its stock first if it had been deducted.

    Revenue already posted for the order stays in the ledger.
    """
    def _op():
        order = _load_order_locked(order_id)

        if order.stock_deducted:
            adjust_stock(order, RETURN)
            order.stock_deducted = False

        db.session.delete(order)
        db.session.commit()

    run_with_retry(_op)


def get_order(order_id: int) -> Order:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if order is None:
        raise OrderNotFoundError("Order not found")
    return order


def _matches(order: Order, needle: str) -> bool:
    haystack = " ".join([
        f"{order.number:04d}" if order.number else "",
        order.customer_name or "",
        order.phone or "",
        order.status or "",
        " ".join(line.name for line in order.lines),
    ]).lower()
    return needle in haystack


def list_orders(*, status: str | None = None, q: str | None = None, limit: int = 200) -> list[Order]:
    """Orders, newest first, optionally filtered by status and free text."""
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == _choice("status", status, ORDER_STATUSES))

    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    needle = (q or "").strip().lower()
    if needle:
        orders = [o for o in orders if _matches(o, needle)]

    return orders[:limit]
