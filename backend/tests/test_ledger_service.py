# Overview: Pytest coverage for ledger posting, reconciliation and summaries.

"""
Ledger Tests

Revenue from orders is posted at most once per order, whatever the number of
PAID transitions or reconciliation sweeps. Manual entries feed the period
summary alongside order revenue.
"""

from datetime import datetime

import pytest

from conftest import item
from crm.models import LedgerEntry, Order
from crm.services import ledger_service, order_service
from crm.validation import ValidationError


def _order(status="DRAFT", **kwargs):
    kwargs.setdefault("items", [item("X", 2, 100)])
    kwargs.setdefault("shipping_cents", 10)
    return order_service.create_order(
        customer_name="Ana Souza",
        phone="11987654321",
        status=status,
        **kwargs,
    )


class TestPostRevenue:

    def test_posts_order_total(self, db_session):
        order = _order()

        entry = ledger_service.post_revenue_for_order(order)
        db_session.commit()

        assert entry is not None
        assert entry.amount_cents == 210
        assert entry.entry_type == "REVENUE"
        assert entry.status == "PAID"
        assert entry.order_id == order.id
        assert entry.category == "Sales"
        assert entry.description == "Sale - Order #0001 - Ana Souza"
        assert entry.period == entry.posting_date.strftime("%Y-%m")

    def test_second_post_is_noop(self, db_session):
        order = _order()

        ledger_service.post_revenue_for_order(order)
        db_session.commit()
        assert ledger_service.post_revenue_for_order(order) is None
        db_session.commit()

        assert db_session.query(LedgerEntry).filter_by(order_id=order.id).count() == 1

    def test_zero_total_is_not_posted(self, db_session):
        order = _order(items=[item("Sample", 1, 0)], shipping_cents=0)

        assert ledger_service.post_revenue_for_order(order) is None

    def test_payment_method_defaults_to_pix(self, db_session):
        order = _order()
        entry = ledger_service.post_revenue_for_order(order)
        assert entry.payment_method == "PIX"

    def test_payment_method_from_order(self, db_session):
        order = _order(payment_method="cash")
        entry = ledger_service.post_revenue_for_order(order)
        assert entry.payment_method == "CASH"

    def test_explicit_payment_method_wins(self, db_session):
        order = _order(payment_method="CASH")
        entry = ledger_service.post_revenue_for_order(order, "CREDIT")
        assert entry.payment_method == "CREDIT"


class TestReconcile:

    def test_posts_missing_revenue(self, db_session):
        order = _order(status="PAID")
        entry = ledger_service.get_entry_for_order(order.id)
        ledger_service.delete_entry(entry.id)

        posted = ledger_service.reconcile_paid_orders()

        assert [e.order_id for e in posted] == [order.id]
        assert ledger_service.get_entry_for_order(order.id).amount_cents == 210

    def test_repeated_sweeps_post_once(self, db_session):
        order = _order(status="PAID")

        for _ in range(3):
            assert ledger_service.reconcile_paid_orders() == []

        assert db_session.query(LedgerEntry).filter_by(order_id=order.id).count() == 1

    def test_ignores_unpaid_orders(self, db_session):
        _order(status="DRAFT")
        _order(status="AWAITING_PAYMENT")

        assert ledger_service.reconcile_paid_orders() == []
        assert db_session.query(LedgerEntry).count() == 0

    def test_ignores_shipped_orders_without_entry(self, db_session):
        order = _order(status="SHIPPED")

        assert ledger_service.reconcile_paid_orders() == []
        assert ledger_service.get_entry_for_order(order.id) is None


class TestManualEntries:

    def test_create_expense(self, db_session):
        entry = ledger_service.create_entry(
            entry_type="expense",
            description="Packaging",
            amount_cents=5000,
            posting_date=datetime(2024, 5, 10, 12, 0),
        )

        assert entry.id is not None
        assert entry.entry_type == "EXPENSE"
        assert entry.period == "2024-05"
        assert entry.order_id is None

    @pytest.mark.parametrize("kwargs", [
        {"entry_type": "TRANSFER", "description": "x", "amount_cents": 100},
        {"entry_type": "EXPENSE", "description": "  ", "amount_cents": 100},
        {"entry_type": "EXPENSE", "description": "x", "amount_cents": 0},
        {"entry_type": "EXPENSE", "description": "x", "amount_cents": -5},
        {"entry_type": "EXPENSE", "description": "x", "amount_cents": None},
        {"entry_type": "EXPENSE", "description": "x", "amount_cents": 100, "status": "LATE"},
    ])
    def test_rejects_invalid_input(self, db_session, kwargs):
        with pytest.raises(ValidationError):
            ledger_service.create_entry(**kwargs)
        assert db_session.query(LedgerEntry).count() == 0

    def test_delete_missing_entry(self, db_session):
        with pytest.raises(ledger_service.LedgerNotFoundError):
            ledger_service.delete_entry(999)

    def test_list_filters(self, db_session):
        may = datetime(2024, 5, 10, 12, 0)
        june = datetime(2024, 6, 2, 12, 0)
        ledger_service.create_entry(entry_type="EXPENSE", description="Packaging", amount_cents=500, posting_date=may)
        ledger_service.create_entry(entry_type="REVENUE", description="Fair stand", amount_cents=900, posting_date=june)

        assert [e.description for e in ledger_service.list_entries()] == ["Fair stand", "Packaging"]
        assert [e.description for e in ledger_service.list_entries(period="2024-05")] == ["Packaging"]
        assert [e.description for e in ledger_service.list_entries(entry_type="revenue")] == ["Fair stand"]
        assert [e.description for e in ledger_service.list_entries(q="pack")] == ["Packaging"]


class TestPeriodSummary:

    def test_balance_uses_paid_entries_only(self, db_session):
        may = datetime(2024, 5, 10, 12, 0)
        ledger_service.create_entry(entry_type="REVENUE", description="Sale", amount_cents=10000, posting_date=may)
        ledger_service.create_entry(entry_type="EXPENSE", description="Rent", amount_cents=4000, posting_date=may)
        ledger_service.create_entry(
            entry_type="REVENUE", description="Promised", amount_cents=700, status="PENDING", posting_date=may,
        )
        ledger_service.create_entry(
            entry_type="EXPENSE", description="Supplier", amount_cents=300, status="PENDING", posting_date=may,
        )
        ledger_service.create_entry(
            entry_type="REVENUE", description="Other month", amount_cents=999, posting_date=datetime(2024, 6, 1, 12, 0),
        )

        summary = ledger_service.period_summary("2024-05")

        assert summary == {
            "period": "2024-05",
            "revenue_paid_cents": 10000,
            "expense_paid_cents": 4000,
            "balance_cents": 6000,
            "revenue_pending_cents": 700,
            "expense_pending_cents": 300,
            "entry_count": 4,
        }

    def test_empty_period(self, db_session):
        summary = ledger_service.period_summary("1999-01")
        assert summary["balance_cents"] == 0
        assert summary["entry_count"] == 0

    def test_all_time(self, db_session):
        _order(status="PAID")
        ledger_service.create_entry(entry_type="EXPENSE", description="Rent", amount_cents=10)

        summary = ledger_service.period_summary()

        assert summary["revenue_paid_cents"] == 210
        assert summary["balance_cents"] == 200

    def test_deleting_order_keeps_revenue(self, db_session):
        order = _order(status="PAID")
        order_id = order.id

        order_service.delete_order(order_id)

        assert db_session.get(Order, order_id) is None
        assert ledger_service.get_entry_for_order(order_id) is not None
