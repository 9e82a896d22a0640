# Overview: Pytest coverage for the product catalog service.

import pytest

from crm.models import Product
from crm.services import products_service
from crm.services.products_service import ProductNotFoundError, match_product_by_name, normalize_name
from crm.validation import ValidationError


class TestNormalizeName:

    @pytest.mark.parametrize("raw,expected", [
        ("  Óud  Royal ", "oud royal"),
        ("CITRUS", "citrus"),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_name(raw) == expected


class TestProductCrud:

    def test_create_and_update(self, db_session):
        product = products_service.create_product(patch={"name": "Oud Royal", "category": "unisex", "stock": 4})

        assert product.category == "UNISEX"
        assert product.is_active is True

        updated = products_service.update_product(product.id, {"sale_price_cents": 19900, "stock": 6})
        assert updated.sale_price_cents == 19900
        assert updated.available == 6

    def test_invalid_category(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product(patch={"name": "Oud Royal", "category": "KIDS"})

    def test_delete(self, db_session, product):
        products_service.delete_product(product.id)
        assert db_session.query(Product).count() == 0

    def test_missing(self, db_session):
        with pytest.raises(ProductNotFoundError):
            products_service.get_product(999)

    def test_list_search_and_active(self, db_session, make_product):
        oud = make_product(name="Oud Royal", brand="Maison Ã")
        make_product(name="Citrus Fresh", is_active=False)

        assert [p.id for p in products_service.list_products(active_only=True)] == [oud.id]
        assert [p.id for p in products_service.list_products(q="maison a")] == [oud.id]
        assert len(products_service.list_products()) == 2


class TestMatchByName:

    def test_first_active_match(self, db_session, make_product):
        first = make_product(name="Oud Royal")
        make_product(name="OUD ROYAL")

        assert match_product_by_name("oud royal").id == first.id

    def test_blank_name(self, db_session, product):
        assert match_product_by_name("  ") is None
