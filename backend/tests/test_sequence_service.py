# Overview: Pytest coverage for order numbering.

from crm.services.sequence_service import (
    SequenceError,
    current_order_number,
    format_order_number,
    next_number,
    next_order_number,
)

import pytest


class TestOrderSequence:

    def test_first_number_is_one(self, db_session):
        assert current_order_number() == 0
        assert next_order_number() == 1
        assert current_order_number() == 1

    def test_numbers_strictly_increase(self, db_session):
        numbers = [next_order_number() for _ in range(5)]
        assert numbers == [1, 2, 3, 4, 5]

    def test_numbers_survive_commit(self, db_session):
        next_order_number()
        next_order_number()
        db_session.commit()
        assert next_order_number() == 3

    def test_rolled_back_number_is_released(self, db_session):
        next_order_number()
        db_session.commit()
        next_order_number()
        db_session.rollback()
        assert next_order_number() == 2

    def test_sequences_are_independent(self, db_session):
        next_order_number()
        next_order_number()
        assert next_number("invoices") == 1

    def test_name_required(self, db_session):
        with pytest.raises(SequenceError):
            next_number("")


class TestFormatOrderNumber:

    @pytest.mark.parametrize("number,expected", [
        (1, "0001"),
        (42, "0042"),
        (12345, "12345"),
        (None, "-"),
        (0, "-"),
    ])
    def test_display(self, number, expected):
        assert format_order_number(number) == expected
