# Overview: Service-layer operations for lead follow-up tasks and the contact log.

from __future__ import annotations

from datetime import datetime, timedelta

from ..extensions import db
from ..models import Lead, LeadInteraction, LeadTask
from ..models.leads import INTERACTION_CHANNELS, TASK_TYPES
from ..validation import ValidationError, enforce_choice
from crm.time_utils import utcnow
"""
Task Policy (authoritative)

- A new lead gets the four default reminders: follow-ups at +24h and +48h,
  post-sale at +3 days, win-back at +30 days.
- One task per (lead, type). Scheduling a type that already exists moves its
  due date and reopens it.
- When a lead moves on the kanban:
  - LOST skips every open task,
  - CONTACTED / NEGOTIATING reschedule both follow-ups from now,
  - PAID / COMPLETED schedule the post-sale check in 3 days.
- Completing the post-sale check schedules the win-back 30 days later.
- The policy helpers do not commit; the lead and order services own the
  transaction. Completing, skipping and logging an interaction commit.
"""

TASK_DELAYS = {
    "FOLLOWUP_24H": timedelta(hours=24),
    "FOLLOWUP_48H": timedelta(hours=48),
    "POST_SALE_3D": timedelta(days=3),
    "WINBACK_30D": timedelta(days=30),
}

ACTIVE_LEAD_STATUSES = frozenset({"CONTACTED", "NEGOTIATING"})
WON_LEAD_STATUSES = frozenset({"PAID", "COMPLETED"})

TASK_LABELS = {
    "FOLLOWUP_24H": "Follow-up (24h)",
    "FOLLOWUP_48H": "Follow-up (48h)",
    "POST_SALE_3D": "Post-sale (3 days)",
    "WINBACK_30D": "Win-back (30 days)",
}


class TaskNotFoundError(LookupError):
    """Raised when a task id does not exist."""


def task_label(task_type: str) -> str:
    return TASK_LABELS.get(task_type, task_type)


def schedule_task(lead_id: int, task_type: str, now: datetime | None = None) -> LeadTask:
    """Create or reopen the (lead, type) task, due TASK_DELAYS[type] after now."""
    if task_type not in TASK_TYPES:
        raise ValidationError(f"task_type must be one of: {', '.join(TASK_TYPES)}")

    due_at = (now or utcnow()) + TASK_DELAYS[task_type]

    task = db.session.query(LeadTask).filter_by(lead_id=lead_id, task_type=task_type).first()
    if task is None:
        task = LeadTask(lead_id=lead_id, task_type=task_type, status="OPEN", due_at=due_at)
        db.session.add(task)
    else:
        task.status = "OPEN"
        task.due_at = due_at
    return task


def create_default_tasks(lead: Lead) -> list[LeadTask]:
    now = utcnow()
    return [schedule_task(lead.id, task_type, now) for task_type in TASK_TYPES]


def apply_task_policy(lead: Lead, status: str | None) -> None:
    """React to a lead entering `status` (see Task Policy)."""
    if status == "LOST":
        (
            db.session.query(LeadTask)
            .filter(LeadTask.lead_id == lead.id, LeadTask.status == "OPEN")
            .update({LeadTask.status: "SKIPPED"}, synchronize_session="fetch")
        )
    elif status in ACTIVE_LEAD_STATUSES:
        now = utcnow()
        schedule_task(lead.id, "FOLLOWUP_24H", now)
        schedule_task(lead.id, "FOLLOWUP_48H", now)
    elif status in WON_LEAD_STATUSES:
        schedule_task(lead.id, "POST_SALE_3D")


def get_task(task_id: int) -> LeadTask:
    task = db.session.query(LeadTask).filter_by(id=task_id).first()
    if task is None:
        raise TaskNotFoundError("Task not found")
    return task


def complete_task(task_id: int) -> LeadTask:
    task = get_task(task_id)
    task.status = "DONE"
    if task.task_type == "POST_SALE_3D":
        schedule_task(task.lead_id, "WINBACK_30D")
    db.session.commit()
    return task


def skip_task(task_id: int) -> LeadTask:
    task = get_task(task_id)
    task.status = "SKIPPED"
    db.session.commit()
    return task


def list_open_tasks(
    *,
    lead_id: int | None = None,
    overdue_only: bool = False,
    due_before: datetime | None = None,
    limit: int = 200,
) -> list[LeadTask]:
    """Open tasks, earliest due first."""
    q = db.session.query(LeadTask).filter(LeadTask.status == "OPEN")
    if lead_id is not None:
        q = q.filter(LeadTask.lead_id == lead_id)
    if overdue_only:
        q = q.filter(LeadTask.due_at < utcnow())
    if due_before is not None:
        q = q.filter(LeadTask.due_at < due_before)
    return q.order_by(LeadTask.due_at.asc(), LeadTask.id.asc()).limit(limit).all()


def list_lead_tasks(lead_id: int) -> list[LeadTask]:
    return (
        db.session.query(LeadTask)
        .filter(LeadTask.lead_id == lead_id)
        .order_by(LeadTask.due_at.asc(), LeadTask.id.asc())
        .all()
    )


def add_interaction(
    lead: Lead,
    *,
    channel: str,
    summary: str,
    next_action_at: datetime | None = None,
) -> LeadInteraction:
    summary = (summary or "").strip()
    if not summary:
        raise ValidationError("summary is required")

    interaction = LeadInteraction(
        lead_id=lead.id,
        channel=enforce_choice("channel", channel or "", INTERACTION_CHANNELS),
        summary=summary,
        next_action_at=next_action_at,
    )
    db.session.add(interaction)
    db.session.commit()
    return interaction


def list_interactions(lead_id: int, limit: int = 200) -> list[LeadInteraction]:
    """Contact log of a lead, newest first."""
    return (
        db.session.query(LeadInteraction)
        .filter(LeadInteraction.lead_id == lead_id)
        .order_by(LeadInteraction.created_at.desc(), LeadInteraction.id.desc())
        .limit(limit)
        .all()
    )
