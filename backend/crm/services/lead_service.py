# Overview: Service-layer operations for leads; the order service only touches leads through here.

from __future__ import annotations

from ..extensions import db
from ..models import Lead, Order
from ..models.leads import LEAD_STATUSES
from ..models.orders import ORDER_ORIGINS
from ..validation import ValidationError, enforce_amount, enforce_choice, is_valid_phone
from .products_service import match_product_by_name
from .task_service import apply_task_policy, create_default_tasks
from crm.time_utils import utcnow


class LeadError(Exception):
    """Raised for lead operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class LeadNotFoundError(LeadError):
    """Raised when a lead id does not exist."""


def get_lead(lead_id: int) -> Lead:
    lead = db.session.query(Lead).filter_by(id=lead_id).first()
    if lead is None:
        raise LeadNotFoundError("Lead not found")
    return lead


def list_leads(status: str | None = None) -> list[Lead]:
    q = db.session.query(Lead)
    if status:
        q = q.filter(Lead.status == enforce_choice("status", status, LEAD_STATUSES))
    return q.order_by(Lead.updated_at.desc(), Lead.id.desc()).all()


def create_lead(
    *,
    name: str,
    phone: str,
    origin: str | None = None,
    estimated_value_cents: int = 0,
    interests: list[str] | None = None,
    status: str = "NEW",
    notes: str | None = None,
) -> Lead:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Customer name is required")
    if not is_valid_phone(phone):
        raise ValidationError("Phone must include area code (at least 10 digits)")
    enforce_amount("estimated_value_cents", estimated_value_cents)

    lead = Lead(
        name=name,
        phone=phone.strip(),
        origin=enforce_choice("origin", origin or "OTHER", ORDER_ORIGINS),
        estimated_value_cents=estimated_value_cents or 0,
        interests=[str(i).strip() for i in (interests or []) if str(i).strip()],
        status=enforce_choice("status", status, LEAD_STATUSES),
        notes=(notes or "").strip() or None,
    )
    db.session.add(lead)
    db.session.flush()
    create_default_tasks(lead)
    db.session.commit()
    return lead


def set_lead_status(lead_id: int, status: str) -> Lead:
    """Move a lead to another pipeline column."""
    lead = get_lead(lead_id)
    lead.status = enforce_choice("status", status, LEAD_STATUSES)
    lead.updated_at = utcnow()
    apply_task_policy(lead, lead.status)
    db.session.commit()
    return lead


def sync_lead_from_order(order: Order, lead_status: str | None) -> Lead | None:
    """
    Mirror an order's progress on its originating lead.

    No-op when the order has no lead, the lead was removed, or the order
    status has no lead counterpart. Does not commit.
    """
    if not order.lead_id or not lead_status:
        return None

    lead = db.session.query(Lead).filter_by(id=order.lead_id).first()
    if lead is None:
        return None

    lead.status = lead_status
    lead.updated_at = utcnow()
    apply_task_policy(lead, lead_status)
    return lead


def items_from_lead(lead: Lead) -> list[dict]:
    """
    Order items for the products a lead asked about.

    Names that match an active catalog product (ignoring case and accents)
    take its id, name and sale price; the rest become free-text items at 0.
    """
    items = []
    for raw in lead.interests or []:
        name = str(raw).strip()
        if not name:
            continue
        product = match_product_by_name(name)
        if product is not None:
            items.append({
                "product_id": product.id,
                "name": product.name,
                "quantity": 1,
                "unit_price_cents": product.sale_price_cents or 0,
            })
        else:
            items.append({"name": name, "quantity": 1, "unit_price_cents": 0})
    return items
