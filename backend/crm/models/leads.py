from __future__ import annotations

from ..extensions import db
from crm.time_utils import to_utc_z, utcnow

LEAD_STATUSES = ("NEW", "CONTACTED", "NEGOTIATING", "PAID", "SHIPPED", "COMPLETED", "LOST")
TASK_TYPES = ("FOLLOWUP_24H", "FOLLOWUP_48H", "POST_SALE_3D", "WINBACK_30D")
TASK_STATUSES = ("OPEN", "DONE", "SKIPPED")
INTERACTION_CHANNELS = ("WHATSAPP", "INSTAGRAM")


class Lead(db.Model):
    """
    Sales lead (kanban card).

    `interests` holds the product names the customer asked about; they seed
    the items of an order created from the lead.
    """
    __tablename__ = "leads"
    __table_args__ = (
        db.Index("ix_leads_status_updated", "status", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    origin = db.Column(db.String(16), nullable=False, default="OTHER")
    estimated_value_cents = db.Column(db.Integer, nullable=False, default=0)
    interests = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(16), nullable=False, default="NEW", index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "origin": self.origin,
            "estimated_value_cents": self.estimated_value_cents,
            "interests": list(self.interests or []),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class LeadTask(db.Model):
    """
    Follow-up reminder attached to a lead.

    At most one task per (lead, task_type); re-scheduling updates the
    existing row instead of adding another.
    """
    __tablename__ = "lead_tasks"
    __table_args__ = (
        db.UniqueConstraint("lead_id", "task_type", name="uq_lead_tasks_lead_type"),
        db.Index("ix_lead_tasks_status_due", "status", "due_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False, index=True)
    task_type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="OPEN")
    due_at = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "task_type": self.task_type,
            "status": self.status,
            "due_at": to_utc_z(self.due_at),
            "created_at": to_utc_z(self.created_at),
        }


class LeadInteraction(db.Model):
    """Contact log entry (a WhatsApp or Instagram conversation) for a lead."""
    __tablename__ = "lead_interactions"
    __table_args__ = (
        db.Index("ix_lead_interactions_lead_created", "lead_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    lead_id = db.Column(db.Integer, db.ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    channel = db.Column(db.String(16), nullable=False)
    summary = db.Column(db.Text, nullable=False)
    next_action_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "channel": self.channel,
            "summary": self.summary,
            "next_action_at": to_utc_z(self.next_action_at),
            "created_at": to_utc_z(self.created_at),
        }
