# Overview: Pytest coverage for leads and their link to orders.

import pytest

from crm.models import Lead
from crm.services import lead_service
from crm.services.lead_service import LeadNotFoundError, items_from_lead
from crm.validation import ValidationError


class TestCreateLead:

    def test_create(self, db_session):
        lead = lead_service.create_lead(
            name=" Ana Souza ",
            phone="11987654321",
            origin="instagram",
            estimated_value_cents=25000,
            interests=["Oud Royal", " ", "Citrus Fresh"],
        )

        assert lead.id is not None
        assert lead.name == "Ana Souza"
        assert lead.origin == "INSTAGRAM"
        assert lead.status == "NEW"
        assert lead.interests == ["Oud Royal", "Citrus Fresh"]

    @pytest.mark.parametrize("kwargs", [
        {"name": "", "phone": "11987654321"},
        {"name": "Ana", "phone": "12345"},
        {"name": "Ana", "phone": "11987654321", "status": "WON"},
        {"name": "Ana", "phone": "11987654321", "estimated_value_cents": -1},
    ])
    def test_rejects_invalid_input(self, db_session, kwargs):
        with pytest.raises(ValidationError):
            lead_service.create_lead(**kwargs)
        assert db_session.query(Lead).count() == 0


class TestLeadStatus:

    def test_set_status(self, db_session, make_lead):
        lead = make_lead()
        assert lead_service.set_lead_status(lead.id, "contacted").status == "CONTACTED"

    def test_unknown_lead(self, db_session):
        with pytest.raises(LeadNotFoundError):
            lead_service.set_lead_status(999, "LOST")

    def test_list_by_status(self, db_session, make_lead):
        make_lead(name="Ana", status="NEW")
        lost = make_lead(name="Bia", status="LOST")

        assert [l.id for l in lead_service.list_leads("lost")] == [lost.id]
        assert len(lead_service.list_leads()) == 2


class TestItemsFromLead:

    def test_matches_catalog_ignoring_case_and_accents(self, db_session, make_product, make_lead):
        perfume = make_product(name="Óud Royal", sale_price_cents=31000)
        lead = make_lead(interests=["  oud   ROYAL "])

        assert items_from_lead(lead) == [{
            "product_id": perfume.id,
            "name": "Óud Royal",
            "quantity": 1,
            "unit_price_cents": 31000,
        }]

    def test_inactive_products_do_not_match(self, db_session, make_product, make_lead):
        make_product(name="Old Spice Blend", is_active=False)
        lead = make_lead(interests=["Old Spice Blend"])

        assert items_from_lead(lead) == [
            {"name": "Old Spice Blend", "quantity": 1, "unit_price_cents": 0},
        ]

    def test_no_interests(self, db_session, make_lead):
        assert items_from_lead(make_lead(interests=[])) == []
