# Overview: Flask API routes for orders; parses input and returns JSON responses.

# backend/crm/routes/orders.py
"""Order API routes. All side effects (stock, revenue, lead) happen in order_service."""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.orm.exc import StaleDataError

from ..services import order_service
from ..services.order_service import OrderError, OrderNotFoundError
from ..services.inventory_service import list_movements
from ..services.ledger_service import get_entry_for_order


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error(e: OrderError):
    status = 404 if isinstance(e, OrderNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


def _conflict():
    return jsonify({"error": "Order was changed by someone else, reload and try again"}), 409


@orders_bp.get("")
def list_orders_route():
    """
    List orders, newest first.

    Query params:
    - status: filter by status (e.g. PAID)
    - q: free text over number, customer, phone and item names
    """
    try:
        orders = order_service.list_orders(
            status=request.args.get("status"),
            q=request.args.get("q"),
            limit=current_app.config["ORDERS_LIST_LIMIT"],
        )
    except OrderError as e:
        return _error(e)

    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.post("")
def create_order_route():
    """
    Create an order.

    Body: customer_name, phone, items[{product_id?, name, quantity, unit_price_cents}],
    discount_cents, shipping_cents, status, lead_id, origin, notes, payment_method.
    With lead_id and no items, items come from the lead's interests.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        order = order_service.create_order(
            customer_name=data.get("customer_name"),
            phone=data.get("phone"),
            items=data.get("items"),
            discount_cents=data.get("discount_cents", 0),
            shipping_cents=data.get("shipping_cents", 0),
            status=data.get("status") or "DRAFT",
            lead_id=data.get("lead_id"),
            origin=data.get("origin"),
            notes=data.get("notes"),
            payment_method=data.get("payment_method"),
        )
    except OrderError as e:
        return _error(e)
    except StaleDataError:
        return _conflict()
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 201


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    """Order with lines, its revenue entry (if posted) and its stock movements."""
    try:
        order = order_service.get_order(order_id)
    except OrderError as e:
        return _error(e)

    entry = get_entry_for_order(order.id)
    return jsonify({
        "order": order.to_dict(),
        "ledger_entry": entry.to_dict() if entry else None,
        "stock_movements": [m.to_dict() for m in list_movements(order_id=order.id)],
    }), 200


@orders_bp.patch("/<int:order_id>")
def update_order_route(order_id: int):
    """Edit customer_name, phone, origin or notes."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        order = order_service.update_order_details(order_id, data)
    except OrderError as e:
        return _error(e)
    except StaleDataError:
        return _conflict()
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    """Body: status, optional payment_method (used when the order becomes PAID)."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    status = data.get("status")

    if not status:
        return jsonify({"error": "status required"}), 400

    try:
        order = order_service.update_order_status(order_id, status, data.get("payment_method"))
    except OrderError as e:
        return _error(e)
    except StaleDataError:
        return _conflict()
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 200


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
    except OrderError as e:
        return _error(e)
    except StaleDataError:
        return _conflict()
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"deleted": True}), 200
