# Overview: Flask API routes for the financial ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..services import ledger_service
from ..services.ledger_service import LedgerError, LedgerNotFoundError
from ..validation import ValidationError
from crm.time_utils import parse_iso_datetime

"""
Time semantics:
- posting_date accepts ISO-8601 dates or datetimes; a bare date is stored at noon UTC.
- period filters use the YYYY-MM accounting period.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
def list_ledger_entries_route():
    """
    List ledger entries, newest first.

    Loading the ledger first posts any revenue missing for PAID orders.

    Query params: period (YYYY-MM), type (REVENUE/EXPENSE), status (PAID/PENDING), q
    """
    reconciled = 0
    if current_app.config.get("RECONCILE_ON_LEDGER_LOAD", True):
        try:
            reconciled = len(ledger_service.reconcile_paid_orders())
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Ledger reconciliation failed")

    try:
        entries = ledger_service.list_entries(
            period=request.args.get("period"),
            entry_type=request.args.get("type"),
            status=request.args.get("status"),
            q=request.args.get("q"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [e.to_dict() for e in entries],
        "count": len(entries),
        "reconciled": reconciled,
    }), 200


@ledger_bp.post("")
def create_ledger_entry_route():
    """Create a manual revenue or expense entry."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    raw_date = data.get("posting_date")
    try:
        if raw_date is not None and not isinstance(raw_date, str):
            raise ValueError(raw_date)
        posting_date = parse_iso_datetime(raw_date)
    except ValueError:
        return jsonify({"error": "posting_date must be an ISO-8601 date or datetime"}), 400

    amount = data.get("amount_cents")
    if amount is not None and (isinstance(amount, bool) or not isinstance(amount, int)):
        return jsonify({"error": "amount_cents must be an integer"}), 400

    try:
        entry = ledger_service.create_entry(
            entry_type=data.get("entry_type") or "",
            description=data.get("description") or "",
            amount_cents=amount,
            status=data.get("status") or "PAID",
            payment_method=data.get("payment_method"),
            category=data.get("category"),
            posting_date=posting_date,
            customer_name=data.get("customer_name"),
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create ledger entry")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"entry": entry.to_dict()}), 201


@ledger_bp.delete("/<int:entry_id>")
def delete_ledger_entry_route(entry_id: int):
    try:
        ledger_service.delete_entry(entry_id)
    except LedgerNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to delete ledger entry")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"deleted": True}), 200


@ledger_bp.get("/summary")
def ledger_summary_route():
    """Paid/pending totals and balance for ?period=YYYY-MM (all time if omitted)."""
    return jsonify({"summary": ledger_service.period_summary(request.args.get("period"))}), 200


@ledger_bp.post("/reconcile")
def reconcile_ledger_route():
    """Run the reconciliation sweep on demand."""
    try:
        posted = ledger_service.reconcile_paid_orders()
    except Exception:
        current_app.logger.exception("Ledger reconciliation failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"posted": [e.to_dict() for e in posted], "count": len(posted)}), 200
