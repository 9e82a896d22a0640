# Overview: Flask API routes for leads; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..services import lead_service
from ..services.lead_service import LeadNotFoundError
from ..services import task_service
from ..validation import ValidationError
from crm.time_utils import parse_iso_datetime

leads_bp = Blueprint("leads", __name__, url_prefix="/api/leads")


@leads_bp.get("")
def list_leads_route():
    try:
        leads = lead_service.list_leads(status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [l.to_dict() for l in leads], "count": len(leads)}), 200


@leads_bp.post("")
def create_lead_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    interests = data.get("interests") or []
    if not isinstance(interests, list):
        return jsonify({"error": "interests must be a list"}), 400

    estimated = data.get("estimated_value_cents") or 0
    if isinstance(estimated, bool) or not isinstance(estimated, int):
        return jsonify({"error": "estimated_value_cents must be an integer"}), 400

    try:
        lead = lead_service.create_lead(
            name=str(data.get("name") or ""),
            phone=str(data.get("phone") or ""),
            origin=data.get("origin"),
            estimated_value_cents=estimated,
            interests=interests,
            status=data.get("status") or "NEW",
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create lead")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"lead": lead.to_dict()}), 201


@leads_bp.get("/<int:lead_id>")
def get_lead_route(lead_id: int):
    try:
        lead = lead_service.get_lead(lead_id)
    except LeadNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"lead": lead.to_dict()}), 200


@leads_bp.post("/<int:lead_id>/status")
def set_lead_status_route(lead_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    if not data.get("status"):
        return jsonify({"error": "status required"}), 400

    try:
        lead = lead_service.set_lead_status(lead_id, data["status"])
    except LeadNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"lead": lead.to_dict()}), 200


@leads_bp.get("/<int:lead_id>/tasks")
def list_lead_tasks_route(lead_id: int):
    try:
        lead = lead_service.get_lead(lead_id)
    except LeadNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    tasks = task_service.list_lead_tasks(lead.id)
    return jsonify({
        "items": [dict(t.to_dict(), label=task_service.task_label(t.task_type)) for t in tasks],
        "count": len(tasks),
    }), 200


@leads_bp.get("/<int:lead_id>/interactions")
def list_interactions_route(lead_id: int):
    try:
        lead = lead_service.get_lead(lead_id)
    except LeadNotFoundError as e:
        return jsonify({"error": str(e)}), 404

    interactions = task_service.list_interactions(lead.id)
    return jsonify({"items": [i.to_dict() for i in interactions], "count": len(interactions)}), 200


@leads_bp.post("/<int:lead_id>/interactions")
def add_interaction_route(lead_id: int):
    """Body: channel (WHATSAPP/INSTAGRAM), summary, optional next_action_at (ISO-8601)."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    raw_next = data.get("next_action_at")
    try:
        if raw_next is not None and not isinstance(raw_next, str):
            raise ValueError(raw_next)
        next_action_at = parse_iso_datetime(raw_next)
    except ValueError:
        return jsonify({"error": "next_action_at must be an ISO-8601 date or datetime"}), 400

    try:
        lead = lead_service.get_lead(lead_id)
        interaction = task_service.add_interaction(
            lead,
            channel=str(data.get("channel") or ""),
            summary=str(data.get("summary") or ""),
            next_action_at=next_action_at,
        )
    except LeadNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add interaction")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"interaction": interaction.to_dict()}), 201
