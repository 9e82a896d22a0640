# Overview: Pytest coverage for lead follow-up tasks and the contact log.

from datetime import timedelta

import pytest

from crm.models import LeadTask
from crm.services import lead_service, order_service, task_service
from crm.services.task_service import TaskNotFoundError
from crm.time_utils import utcnow
from crm.validation import ValidationError
from conftest import item


def _new_lead(name="Ana Souza"):
    return lead_service.create_lead(name=name, phone="11987654321")


def _tasks_by_type(lead_id):
    return {t.task_type: t for t in task_service.list_lead_tasks(lead_id)}


class TestDefaultTasks:

    def test_new_lead_gets_four_open_reminders(self, db_session):
        before = utcnow()
        lead = _new_lead()

        tasks = _tasks_by_type(lead.id)

        assert set(tasks) == {"FOLLOWUP_24H", "FOLLOWUP_48H", "POST_SALE_3D", "WINBACK_30D"}
        assert all(t.status == "OPEN" for t in tasks.values())
        assert tasks["FOLLOWUP_24H"].due_at >= before + timedelta(hours=24)
        assert tasks["WINBACK_30D"].due_at >= before + timedelta(days=30)

    def test_rejected_lead_leaves_no_tasks(self, db_session):
        with pytest.raises(ValidationError):
            lead_service.create_lead(name="", phone="11987654321")
        assert db_session.query(LeadTask).count() == 0

    def test_unknown_task_type(self, db_session):
        lead = _new_lead()
        with pytest.raises(ValidationError):
            task_service.schedule_task(lead.id, "CALL_BACK")


class TestTaskPolicy:

    def test_lost_skips_open_tasks(self, db_session):
        lead = _new_lead()
        done = _tasks_by_type(lead.id)["FOLLOWUP_24H"]
        task_service.complete_task(done.id)

        lead_service.set_lead_status(lead.id, "LOST")

        statuses = {t.task_type: t.status for t in task_service.list_lead_tasks(lead.id)}
        assert statuses["FOLLOWUP_24H"] == "DONE"
        assert statuses["FOLLOWUP_48H"] == "SKIPPED"
        assert statuses["WINBACK_30D"] == "SKIPPED"
        assert task_service.list_open_tasks(lead_id=lead.id) == []

    def test_contacted_reopens_follow_ups_once_per_type(self, db_session):
        lead = _new_lead()
        lead_service.set_lead_status(lead.id, "LOST")

        lead_service.set_lead_status(lead.id, "CONTACTED")

        open_types = sorted(t.task_type for t in task_service.list_open_tasks(lead_id=lead.id))
        assert open_types == ["FOLLOWUP_24H", "FOLLOWUP_48H"]
        assert len(task_service.list_lead_tasks(lead.id)) == 4

    def test_paid_order_schedules_post_sale_check(self, db_session):
        lead = _new_lead()
        post_sale = _tasks_by_type(lead.id)["POST_SALE_3D"]
        task_service.skip_task(post_sale.id)
        order = order_service.create_order(
            customer_name="Ana Souza",
            phone="11987654321",
            items=[item("X", 1, 100)],
            lead_id=lead.id,
        )

        order_service.update_order_status(order.id, "PAID")

        assert lead_service.get_lead(lead.id).status == "PAID"
        assert _tasks_by_type(lead.id)["POST_SALE_3D"].status == "OPEN"

    def test_completing_post_sale_schedules_win_back(self, db_session):
        lead = _new_lead()
        tasks = _tasks_by_type(lead.id)
        task_service.skip_task(tasks["WINBACK_30D"].id)

        before = utcnow()
        done = task_service.complete_task(tasks["POST_SALE_3D"].id)

        assert done.status == "DONE"
        win_back = _tasks_by_type(lead.id)["WINBACK_30D"]
        assert win_back.status == "OPEN"
        assert win_back.due_at >= before + timedelta(days=30)

    def test_unknown_task(self, db_session):
        with pytest.raises(TaskNotFoundError):
            task_service.complete_task(999)
        with pytest.raises(TaskNotFoundError):
            task_service.skip_task(999)


class TestListOpenTasks:

    def test_overdue_and_window_filters(self, db_session):
        lead = _new_lead()
        tasks = _tasks_by_type(lead.id)
        tasks["FOLLOWUP_24H"].due_at = utcnow() - timedelta(hours=1)
        db_session.commit()

        overdue = task_service.list_open_tasks(overdue_only=True)
        within_3_days = task_service.list_open_tasks(due_before=utcnow() + timedelta(days=3, hours=1))

        assert [t.task_type for t in overdue] == ["FOLLOWUP_24H"]
        assert [t.task_type for t in within_3_days] == ["FOLLOWUP_24H", "FOLLOWUP_48H", "POST_SALE_3D"]


class TestInteractions:

    def test_log_newest_first(self, db_session):
        lead = _new_lead()
        first = task_service.add_interaction(lead, channel="whatsapp", summary=" Sent price list ")
        second = task_service.add_interaction(
            lead, channel="INSTAGRAM", summary="Asked for samples",
            next_action_at=utcnow() + timedelta(days=2),
        )

        assert first.channel == "WHATSAPP"
        assert first.summary == "Sent price list"
        assert [i.id for i in task_service.list_interactions(lead.id)] == [second.id, first.id]

    @pytest.mark.parametrize("kwargs", [
        {"channel": "WHATSAPP", "summary": "   "},
        {"channel": "EMAIL", "summary": "Sent price list"},
    ])
    def test_rejects_invalid_input(self, db_session, kwargs):
        lead = _new_lead()
        with pytest.raises(ValidationError):
            task_service.add_interaction(lead, **kwargs)
        assert task_service.list_interactions(lead.id) == []
