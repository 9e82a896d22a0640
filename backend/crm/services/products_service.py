# backend/crm/services/products_service.py
"""
Products Service

Catalog CRUD plus the name matching used to link lead interests to
catalog products. Payloads arrive already validated by
crm.validation.validate_payload (see routes/products.py).
"""
from __future__ import annotations

import re
import unicodedata

from ..extensions import db
from ..models import Product
from ..models.catalog import PRODUCT_CATEGORIES
from ..validation import enforce_choice
from .concurrency import run_with_retry
from crm.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "name", "brand", "category", "volume_ml",
    "purchase_price_cents", "sale_price_cents",
    "stock", "reserved", "is_active", "notes",
}


class ProductNotFoundError(LookupError):
    """Raised when a product id does not exist."""


def normalize_name(value: str | None) -> str:
    """
    Normalize a product name for matching.

    "  Óud  Royal " -> "oud royal"
    """
    text = str(value or "").strip().lower()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", text)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "category":
            v = enforce_choice("category", v, PRODUCT_CATEGORIES)
        setattr(p, k, v)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise ProductNotFoundError("Product not found")
    return product


def list_products(
    *,
    active_only: bool = False,
    q: str | None = None,
    limit: int = 300,
) -> list[Product]:
    """
    Catalog listing, newest first.

    `q` matches name or brand ignoring case and accents.
    """
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active == True)  # noqa: E712

    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    if q:
        needle = normalize_name(q)
        products = [
            p for p in products
            if needle in normalize_name(p.name) or needle in normalize_name(p.brand)
        ]

    return products[:limit]


def create_product(*, patch: dict) -> Product:
    """Create a product from a validated patch dict."""
    product = Product(stock=0, reserved=0, is_active=True)
    apply_product_patch(product, patch)

    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    """Apply a validated patch. Stale concurrent writes are retried."""
    def _op():
        product = get_product(product_id)
        apply_product_patch(product, patch)
        product.updated_at = utcnow()
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Remove a product.

    Orders that reference it keep their line snapshot; later stock
    adjustments simply skip the missing product.
    """
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()


def match_product_by_name(name: str | None) -> Product | None:
    """First active product whose normalized name equals `name`'s."""
    wanted = normalize_name(name)
    if not wanted:
        return None

    for product in db.session.query(Product).filter(Product.is_active == True).order_by(Product.id.asc()):  # noqa: E712
        if normalize_name(product.name) == wanted:
            return product
    return None
