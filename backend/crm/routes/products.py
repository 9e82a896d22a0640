# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

# backend/crm/routes/products.py
from flask import Blueprint, request, jsonify, current_app
from ..models import Product
from ..services import products_service
from ..services.products_service import ProductNotFoundError
from ..services.inventory_service import list_movements
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    """
    List catalog products, newest first.

    Query params:
    - active: "1" to list active products only
    - q: text filter on name/brand (accent-insensitive)
    """
    active_only = request.args.get("active") in ("1", "true", "yes")
    products = products_service.list_products(
        active_only=active_only,
        q=request.args.get("q"),
        limit=current_app.config["PRODUCTS_LIST_LIMIT"],
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(product_id)
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(product_id, patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except ProductNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"deleted": True}), 200


@products_bp.get("/<int:product_id>/movements")
def list_product_movements_route(product_id: int):
    """Stock movements caused by orders, newest first."""
    limit = request.args.get("limit", default=100, type=int)
    movements = list_movements(product_id=product_id, limit=limit)
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)}), 200
