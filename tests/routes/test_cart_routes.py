"""
Tests for /cart endpoints, run against the in-memory Supabase double.
"""

from unittest.mock import patch

import pytest

CART = [
    {
        "id": "line-1",
        "product_id": "prod-1",
        "quantity": 2,
        "selected_add_ons": ["fall-pico"],
        "products": {"id": "prod-1", "name": "Chanderi Saree", "price": 1000},
    }
]
ADD_ONS = [{"id": "fall-pico", "name": "Fall & Pico", "price": 150}]


@pytest.fixture
def db(fake_supabase):
    with patch("storefront.routes.cart.get_supabase_client", return_value=fake_supabase):
        yield fake_supabase


class TestGetCart:
    """Tests for GET /cart"""

    def test_lines_add_ons_and_quote(self, client, authenticated, db, db_response):
        db.on("cart_items", db_response(CART))
        db.on("add_ons", db_response(ADD_ONS))
        db.on("site_content", db_response([{"content": {"delivery_charge": 99}}]))

        response = client.get("/cart")

        assert response.status_code == 200
        body = response.json()
        assert body["items"][0]["item_total"] == 2300.0
        assert body["add_ons"][0]["name"] == "Fall & Pico"
        assert body["quote"] == {
            "subtotal": 2300.0,
            "delivery_charge": 99.0,
            "discount": 0.0,
            "total": 2399.0,
            "coupon_code": None,
        }

    def test_db_failure_is_500(self, client, authenticated, db):
        db.on("cart_items", Exception("timeout"))

        response = client.get("/cart")

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "fetch_error"


class TestCartItems:
    """Tests for POST/PATCH/DELETE /cart/items"""

    def test_add_item(self, client, authenticated, db, db_response):
        db.on("cart_items", db_response([]), db_response([{
            "id": "line-9", "product_id": "prod-9", "quantity": 1, "selected_add_ons": [],
        }]))

        response = client.post("/cart/items", json={"product_id": "prod-9"})

        assert response.status_code == 201
        assert response.json()["id"] == "line-9"

    @pytest.mark.parametrize("quantity", [0, 100])
    def test_quantity_bounds(self, client, authenticated, db, quantity):
        response = client.patch("/cart/items/line-1", json={"quantity": quantity})

        assert response.status_code == 422

    def test_update_unknown_item(self, client, authenticated, db, db_response):
        db.on("cart_items", db_response([]))

        response = client.patch("/cart/items/line-x", json={"quantity": 2})

        assert response.status_code == 404

    def test_remove_item(self, client, authenticated, db, db_response):
        db.on("cart_items", db_response([{"id": "line-1"}]))

        response = client.delete("/cart/items/line-1")

        assert response.status_code == 200
        assert response.json()["status"] == "DELETED"

    def test_clear_cart(self, client, authenticated, db):
        response = client.delete("/cart")

        assert response.status_code == 200
        assert db.queries["cart_items"].args_of("eq") == [("user_id", authenticated.user_id)]
