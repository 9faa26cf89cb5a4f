"""
Tests for /checkout endpoints.

- Happy path: COD order → 201 without payment, online order → Razorpay order
- Failure paths: missing token → 401, bad pincode → 422, empty cart → 400,
  gateway errors and rate limits propagate their status
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront.services.checkout_service import CheckoutError, PlacedOrder
from storefront.services.coupon_service import AppliedCoupon, CouponError
from storefront.services.payment_service import PaymentError
from storefront.services.pricing import OrderQuote
from storefront.services.rate_limit import RateLimitExceeded

ORDER_ID = "5f0c6d2e-8a4b-4c1d-9e3f-2a7b6c5d4e3f"

ADDRESS = {
    "house_no": " 12B ",
    "street": "MG Road",
    "landmark": "Near Kashi Vishwanath",
    "city": "Varanasi",
    "state": "Uttar Pradesh",
    "pincode": "221001",
}


def _order(auth_user, **overrides):
    order = {
        "id": ORDER_ID,
        "user_id": auth_user.user_id,
        "total_amount": "1249.00",
        "status": "pending",
        "shipping_address": ADDRESS,
        "coupon_code": None,
        "discount_amount": "0.00",
        "created_at": "2025-10-01T10:00:00+00:00",
    }
    order.update(overrides)
    return order


@pytest.fixture
def checkout_mocks():
    with patch("storefront.routes.checkout.get_supabase_client", return_value=MagicMock()) as db, \
            patch("storefront.routes.checkout.get_profile", new_callable=AsyncMock,
                  return_value={"full_name": "Asha", "email": "asha@example.com"}), \
            patch("storefront.routes.checkout.place_order", new_callable=AsyncMock) as place:
        yield {"db": db, "place_order": place}


class TestPlaceOrder:
    """Tests for POST /checkout/orders"""

    def test_cod_order_created(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].return_value = PlacedOrder(
            order=_order(authenticated), requires_payment=False,
        )

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "cod",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["requires_payment"] is False
        assert body["payment"] is None
        assert body["order"]["total_amount"] == 1249.0
        assert body["order"]["status"] == "pending"

        kwargs = checkout_mocks["place_order"].await_args.kwargs
        assert kwargs["user_id"] == authenticated.user_id
        assert kwargs["payment_method"] == "cod"
        assert kwargs["address"]["house_no"] == "12B"
        assert kwargs["email"] == "asha@example.com"
        checkout_mocks["db"].assert_called_once_with("test-access-token")

    def test_online_order_returns_gateway_order(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].return_value = PlacedOrder(
            order=_order(authenticated, status="processing"),
            requires_payment=True,
            gateway_order={
                "order_id": "order_Rzp123",
                "amount": 124900,
                "currency": "INR",
                "receipt": ORDER_ID,
                "db_order_id": ORDER_ID,
                "key_id": "rzp_test_key",
            },
        )

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "upi",
            "coupon_code": "FESTIVE10",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["requires_payment"] is True
        assert body["payment"]["order_id"] == "order_Rzp123"
        assert body["payment"]["amount"] == 124900
        assert checkout_mocks["place_order"].await_args.kwargs["coupon_code"] == "FESTIVE10"

    def test_missing_token_is_401(self, client):
        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "cod",
        })

        assert response.status_code == 401

    def test_invalid_pincode_is_422(self, client, authenticated, checkout_mocks):
        response = client.post("/checkout/orders", json={
            "shipping_address": {**ADDRESS, "pincode": "22100"},
            "payment_method": "cod",
        })

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        checkout_mocks["place_order"].assert_not_called()

    def test_unknown_payment_method_is_422(self, client, authenticated, checkout_mocks):
        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "paypal",
        })

        assert response.status_code == 422

    def test_empty_cart_is_400(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].side_effect = CheckoutError("cart_empty", "Your cart is empty")

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "cod",
        })

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "cart_empty"

    def test_coupon_error_is_400(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].side_effect = CouponError("minimum_not_met", "Minimum purchase of ₹3000 required")

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "card",
            "coupon_code": "BIG",
        })

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "minimum_not_met"

    def test_gateway_error_status_propagates(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].side_effect = PaymentError(
            "gateway_error", "Failed to create payment order", status_code=502,
        )

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "card",
        })

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "gateway_error"

    def test_rate_limited_is_429(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].side_effect = RateLimitExceeded("Too many requests")

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "card",
        })

        assert response.status_code == 429
        assert response.json()["error"] == "rate_limited"
        assert response.headers["Retry-After"] == "60"

    def test_unexpected_error_is_500(self, client, authenticated, checkout_mocks):
        checkout_mocks["place_order"].side_effect = Exception("insert failed")

        response = client.post("/checkout/orders", json={
            "shipping_address": ADDRESS,
            "payment_method": "cod",
        })

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "order_error"


class TestQuoteAndCoupon:
    """Tests for GET /checkout/quote and POST /checkout/coupon"""

    def test_quote(self, client, authenticated):
        quote = OrderQuote(
            subtotal=Decimal("2300.00"),
            delivery_charge=Decimal("99.00"),
            discount=Decimal("0.00"),
            total=Decimal("2399.00"),
        )
        with patch("storefront.routes.checkout.get_supabase_client"), \
                patch("storefront.routes.checkout.get_quote", new_callable=AsyncMock, return_value=quote):
            response = client.get("/checkout/quote")

        assert response.status_code == 200
        assert response.json() == {
            "subtotal": 2300.0,
            "delivery_charge": 99.0,
            "discount": 0.0,
            "total": 2399.0,
            "coupon_code": None,
        }

    def test_coupon_preview(self, client, authenticated):
        coupon = AppliedCoupon(
            id="c-1",
            code="FESTIVE10",
            discount_percentage=Decimal("10"),
            discount_amount=Decimal("230.00"),
            current_usage_count=1,
        )
        quote = OrderQuote(
            subtotal=Decimal("2300.00"),
            delivery_charge=Decimal("0.00"),
            discount=Decimal("230.00"),
            total=Decimal("2070.00"),
            coupon_code="FESTIVE10",
        )
        with patch("storefront.routes.checkout.get_supabase_client"), \
                patch("storefront.routes.checkout.apply_coupon", new_callable=AsyncMock,
                      return_value=(coupon, quote)):
            response = client.post("/checkout/coupon", json={"code": "festive10"})

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == "FESTIVE10"
        assert body["discount_amount"] == 230.0
        assert body["quote"]["total"] == 2070.0

    def test_invalid_coupon(self, client, authenticated):
        with patch("storefront.routes.checkout.get_supabase_client"), \
                patch("storefront.routes.checkout.apply_coupon", new_callable=AsyncMock,
                      side_effect=CouponError("invalid_coupon", "This coupon is not valid or has expired")):
            response = client.post("/checkout/coupon", json={"code": "NOPE"})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_coupon"


class TestSaveAddress:
    """Tests for POST /checkout/address"""

    def test_address_saved(self, client, authenticated):
        with patch("storefront.routes.checkout.get_supabase_client"), \
                patch("storefront.routes.checkout.save_shipping_address", new_callable=AsyncMock) as save:
            response = client.post("/checkout/address", json=ADDRESS)

        assert response.status_code == 200
        assert response.json()["status"] == "SAVED"
        assert save.await_args.args[2]["city"] == "Varanasi"

    def test_blank_city_rejected(self, client, authenticated):
        response = client.post("/checkout/address", json={**ADDRESS, "city": "   "})

        assert response.status_code == 422
