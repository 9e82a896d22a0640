# Overview: Flask API routes for lead follow-up tasks; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import task_service
from ..services.task_service import TaskNotFoundError

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def _task_json(task) -> dict:
    return dict(task.to_dict(), label=task_service.task_label(task.task_type))


@tasks_bp.get("")
def list_open_tasks_route():
    """
    Open follow-up tasks, earliest due first.

    Query params:
    - overdue: "1" to list only tasks already past due
    - lead_id: restrict to one lead
    """
    tasks = task_service.list_open_tasks(
        lead_id=request.args.get("lead_id", type=int),
        overdue_only=request.args.get("overdue") in ("1", "true", "yes"),
    )
    return jsonify({"items": [_task_json(t) for t in tasks], "count": len(tasks)}), 200


@tasks_bp.post("/<int:task_id>/done")
def complete_task_route(task_id: int):
    try:
        task = task_service.complete_task(task_id)
    except TaskNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"task": _task_json(task)}), 200


@tasks_bp.post("/<int:task_id>/skip")
def skip_task_route(task_id: int):
    try:
        task = task_service.skip_task(task_id)
    except TaskNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"task": _task_json(task)}), 200
