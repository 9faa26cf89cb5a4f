"""
Tests for checkout: delivery charge, quoting and order placement.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from storefront.services.checkout_service import (
    CheckoutError,
    build_order_item_rows,
    get_delivery_charge,
    place_order,
)
from storefront.services.coupon_service import CouponError

ADDRESS = {
    "house_no": "12B",
    "street": "MG Road",
    "landmark": "",
    "city": "Varanasi",
    "state": "Uttar Pradesh",
    "pincode": "221001",
}

CART = [
    {
        "id": "line-1",
        "product_id": "prod-1",
        "quantity": 1,
        "selected_add_ons": ["fall-pico"],
        "products": {
            "name": "Banarasi Silk Saree",
            "price": 1000,
            "images": ["https://cdn.example/banarasi.jpg"],
            "sku": "BSS-01",
            "color": "Red",
            "fabric": "Silk",
        },
    }
]
ADD_ONS = [{"id": "fall-pico", "name": "Fall & Pico", "price": 150}]


def _prime_cart(fake_supabase, db_response, delivery_charge=99):
    fake_supabase.on("cart_items", db_response(CART))
    fake_supabase.on("add_ons", db_response(ADD_ONS))
    fake_supabase.on(
        "site_content",
        db_response([{"content": {"delivery_charge": delivery_charge}}]),
    )


class TestDeliveryCharge:
    """Tests for get_delivery_charge"""

    @pytest.mark.asyncio
    async def test_reads_settings_section(self, fake_supabase, db_response):
        query = fake_supabase.on("site_content", db_response([{"content": {"delivery_charge": "79.5"}}]))

        assert await get_delivery_charge(fake_supabase) == Decimal("79.50")
        assert query.args_of("eq") == [("section", "settings")]

    @pytest.mark.asyncio
    async def test_missing_settings_means_free_delivery(self, fake_supabase, db_response):
        fake_supabase.on("site_content", db_response([]))

        assert await get_delivery_charge(fake_supabase) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_invalid_value_means_free_delivery(self, fake_supabase, db_response):
        fake_supabase.on("site_content", db_response([{"content": {"delivery_charge": "abc"}}]))

        assert await get_delivery_charge(fake_supabase) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_negative_value_clamped(self, fake_supabase, db_response):
        fake_supabase.on("site_content", db_response([{"content": {"delivery_charge": -20}}]))

        assert await get_delivery_charge(fake_supabase) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_read_error_means_free_delivery(self, fake_supabase):
        fake_supabase.on("site_content", Exception("timeout"))

        assert await get_delivery_charge(fake_supabase) == Decimal("0.00")


class TestOrderItemRows:
    """Tests for build_order_item_rows"""

    def test_snapshots_product_fields(self):
        rows = build_order_item_rows("order-1", CART, {"fall-pico": 150})

        assert rows == [{
            "order_id": "order-1",
            "product_id": "prod-1",
            "quantity": 1,
            "price": "1150.00",
            "item_total": "1150.00",
            "selected_add_ons": ["fall-pico"],
            "product_name": "Banarasi Silk Saree",
            "product_image": "https://cdn.example/banarasi.jpg",
            "product_description": None,
            "product_sku": "BSS-01",
            "product_color": "Red",
            "product_fabric": "Silk",
        }]


class TestPlaceOrder:
    """Tests for place_order"""

    @pytest.mark.asyncio
    async def test_invalid_payment_method(self, fake_supabase):
        with pytest.raises(ValueError):
            await place_order(fake_supabase, "user-1", ADDRESS, "bitcoin")

    @pytest.mark.asyncio
    async def test_empty_cart_rejected(self, fake_supabase, db_response):
        fake_supabase.on("cart_items", db_response([]))

        with pytest.raises(CheckoutError) as exc_info:
            await place_order(fake_supabase, "user-1", ADDRESS, "cod")

        assert exc_info.value.code == "cart_empty"
        assert "orders" not in fake_supabase.queries

    @pytest.mark.asyncio
    async def test_cod_order_uses_reconciled_total(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response)
        orders = fake_supabase.on(
            "orders",
            db_response([{"id": "order-1", "total_amount": "1249.00"}]),
            db_response([{"id": "order-1", "total_amount": "1200.00", "shipping_address": ADDRESS}]),
        )
        order_items = fake_supabase.on("order_items", db_response([{"id": "oi-1"}]))

        with patch(
            "storefront.services.notification_service.send_order_confirmation",
            new_callable=AsyncMock,
        ) as mock_email:
            placed = await place_order(
                fake_supabase, "user-1", ADDRESS, "cod",
                profile={"email": "asha@example.com", "full_name": "Asha"},
            )

        assert placed.requires_payment is False
        assert placed.order["total_amount"] == "1200.00"

        inserted = orders.args_of("insert")[0][0]
        assert inserted["total_amount"] == "1249.00"
        assert inserted["status"] == "pending"
        assert inserted["shipping_address"] == ADDRESS
        assert inserted["discount_amount"] == "0.00"
        assert len(order_items.args_of("insert")[0][0]) == 1

        fake_supabase.rpc.assert_called_once_with("recalculate_order_total", {"order_id": "order-1"})

        # cart cleared after the order
        assert len(fake_supabase.queries["cart_items"].args_of("delete")) == 1

        kwargs = mock_email.await_args.kwargs
        assert kwargs["email"] == "asha@example.com"
        assert kwargs["order_id"] == "order-1"
        assert kwargs["total_amount"] == "1200.00"

    @pytest.mark.asyncio
    async def test_recalculation_failure_does_not_abort(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response)
        fake_supabase.on(
            "orders",
            db_response([{"id": "order-1", "total_amount": "1249.00"}]),
            db_response([]),
        )
        fake_supabase.on("order_items", db_response([{"id": "oi-1"}]))
        fake_supabase.rpc.return_value.execute.side_effect = Exception("rpc missing")

        with patch(
            "storefront.services.notification_service.send_order_confirmation",
            new_callable=AsyncMock,
        ):
            placed = await place_order(fake_supabase, "user-1", ADDRESS, "cod", email="a@b.co")

        assert placed.order["total_amount"] == "1249.00"

    @pytest.mark.asyncio
    async def test_order_items_failure_raises(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response)
        fake_supabase.on("orders", db_response([{"id": "order-1", "total_amount": "1249.00"}]))
        fake_supabase.on("order_items", db_response([]))

        with pytest.raises(Exception, match="order items"):
            await place_order(fake_supabase, "user-1", ADDRESS, "cod")

    @pytest.mark.asyncio
    async def test_online_order_creates_gateway_order(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response)
        orders = fake_supabase.on(
            "orders",
            db_response([{"id": "order-1", "total_amount": "1249.00"}]),
            db_response([{"id": "order-1", "total_amount": "1249.00"}]),
        )
        fake_supabase.on("order_items", db_response([{"id": "oi-1"}]))
        gateway = {"order_id": "order_Rzp1", "amount": 124900, "currency": "INR"}

        with patch(
            "storefront.services.checkout_service.create_gateway_order",
            new_callable=AsyncMock,
            return_value=gateway,
        ) as mock_gateway:
            placed = await place_order(fake_supabase, "user-1", ADDRESS, "upi")

        assert placed.requires_payment is True
        assert placed.gateway_order == gateway
        assert orders.args_of("insert")[0][0]["status"] == "processing"
        mock_gateway.assert_awaited_once_with(
            fake_supabase, "user-1", "order-1", notes={"payment_method": "upi"},
        )
        # online orders keep the cart until payment is verified
        assert fake_supabase.queries["cart_items"].args_of("delete") == []

    @pytest.mark.asyncio
    async def test_coupon_applied_and_usage_incremented(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response, delivery_charge=0)
        coupons = fake_supabase.on("coupons", db_response([{
            "id": "coupon-1",
            "code": "FESTIVE10",
            "discount_percentage": 10,
            "minimum_purchase_amount": 500,
            "max_usage_limit": 100,
            "current_usage_count": 3,
            "status": "active",
            "expiry_date": "2999-12-31T00:00:00+00:00",
        }]))
        orders = fake_supabase.on(
            "orders",
            db_response([{"id": "order-1", "total_amount": "1035.00"}]),
            db_response([{"id": "order-1", "total_amount": "1035.00"}]),
        )
        fake_supabase.on("order_items", db_response([{"id": "oi-1"}]))

        with patch(
            "storefront.services.notification_service.send_order_confirmation",
            new_callable=AsyncMock,
        ):
            await place_order(fake_supabase, "user-1", ADDRESS, "cod", coupon_code="festive10")

        inserted = orders.args_of("insert")[0][0]
        assert inserted["coupon_code"] == "FESTIVE10"
        assert inserted["discount_amount"] == "115.00"
        assert inserted["total_amount"] == "1035.00"
        assert coupons.args_of("update") == [({"current_usage_count": 4},)]

    @pytest.mark.asyncio
    async def test_invalid_coupon_blocks_order(self, fake_supabase, db_response):
        _prime_cart(fake_supabase, db_response)
        fake_supabase.on("coupons", db_response([]))

        with pytest.raises(CouponError):
            await place_order(fake_supabase, "user-1", ADDRESS, "cod", coupon_code="NOPE")

        assert "orders" not in fake_supabase.queries
