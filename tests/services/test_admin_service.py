"""
Tests for the admin back-office service.

Each mutation should sanitize its payload and append an audit row;
product, order and coupon changes also land in the activity log.
"""

import pytest

from storefront.services import admin_service
from storefront.services.admin_service import ResourceInUseError


def _inserted_rows(client, table):
    query = client.queries.get(table)
    if query is None:
        return []
    return [args[0] for args in query.args_of("insert")]


def _audit_rows(client):
    return _inserted_rows(client, "admin_audit_logs")


def _activity_rows(client):
    return _inserted_rows(client, "admin_activity_log")


class TestProducts:
    """Tests for product management"""

    @pytest.mark.asyncio
    async def test_create_sanitizes_and_audits(self, admin_supabase, db_response):
        products = admin_supabase.on("products", db_response([{"id": "prod-1", "name": "Saree"}]))

        created = await admin_service.create_product(admin_supabase, "admin-1", {
            "name": "Saree",
            "price": 2499,
            "description": "<p>Handwoven</p><script>steal()</script>",
            "images": ["https://cdn.example/a.jpg?w=1&h=2"],
        })

        inserted = products.args_of("insert")[0][0]
        assert created["id"] == "prod-1"
        assert inserted["description"] == "<p>Handwoven</p>"
        assert inserted["images"] == ["https://cdn.example/a.jpg?w=1&h=2"]
        audit = _audit_rows(admin_supabase)
        assert audit[0]["action"] == "create_product"
        assert audit[0]["resource_id"] == "prod-1"
        assert audit[0]["user_id"] == "admin-1"

    @pytest.mark.asyncio
    async def test_create_requires_name_and_price(self, admin_supabase):
        with pytest.raises(ValueError):
            await admin_service.create_product(admin_supabase, "admin-1", {"name": "Saree"})

    @pytest.mark.asyncio
    async def test_update_missing_product(self, admin_supabase, db_response):
        admin_supabase.on("products", db_response([]))

        assert await admin_service.update_product(admin_supabase, "admin-1", "prod-x", {"name": "A"}) is None
        assert _audit_rows(admin_supabase) == []

    @pytest.mark.asyncio
    async def test_delete_blocked_when_ordered(self, admin_supabase, db_response):
        admin_supabase.on("order_items", db_response([{"product_id": "prod-1"}]))

        with pytest.raises(ResourceInUseError) as exc_info:
            await admin_service.delete_product(admin_supabase, "admin-1", "prod-1")

        assert exc_info.value.code == "product_in_orders"
        assert "products" not in admin_supabase.queries

    @pytest.mark.asyncio
    async def test_delete_unreferenced_product(self, admin_supabase, db_response):
        admin_supabase.on("order_items", db_response([]))
        admin_supabase.on("products", db_response([{"id": "prod-1"}]))

        assert await admin_service.delete_product(admin_supabase, "admin-1", "prod-1") is True
        assert _audit_rows(admin_supabase)[0]["action"] == "delete_product"

    @pytest.mark.asyncio
    async def test_bulk_delete_skips_ordered_products(self, admin_supabase, db_response):
        admin_supabase.on("order_items", db_response([{"product_id": "prod-2"}]))
        products = admin_supabase.on("products", db_response([{"id": "prod-1"}, {"id": "prod-3"}]))

        result = await admin_service.bulk_delete_products(
            admin_supabase, "admin-1", ["prod-1", "prod-2", "prod-3"],
        )

        assert result == {"deleted": ["prod-1", "prod-3"], "blocked": ["prod-2"]}
        assert products.args_of("in_") == [("id", ["prod-1", "prod-3"])]
        assert len(_audit_rows(admin_supabase)) == 2


class TestOrders:
    """Tests for update_order_status"""

    @pytest.mark.asyncio
    async def test_status_change_audited_with_previous(self, admin_supabase, db_response):
        orders = admin_supabase.on(
            "orders",
            db_response([{"id": "order-1", "status": "processing"}]),
            db_response([{"id": "order-1", "status": "shipped"}]),
        )

        updated = await admin_service.update_order_status(admin_supabase, "admin-1", "order-1", "shipped")

        assert updated["status"] == "shipped"
        assert orders.args_of("update")[0][0]["status"] == "shipped"
        audit = _audit_rows(admin_supabase)[0]
        assert audit["details"] == {"previous_status": "processing", "new_status": "shipped"}

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, admin_supabase):
        with pytest.raises(ValueError):
            await admin_service.update_order_status(admin_supabase, "admin-1", "order-1", "paid")

    @pytest.mark.asyncio
    async def test_unknown_order(self, admin_supabase, db_response):
        admin_supabase.on("orders", db_response([]))

        assert await admin_service.update_order_status(admin_supabase, "admin-1", "order-x", "shipped") is None


class TestCoupons:
    """Tests for coupon management"""

    @pytest.mark.asyncio
    async def test_code_normalised_on_create(self, admin_supabase, db_response):
        coupons = admin_supabase.on("coupons", db_response([{"id": "c-1", "code": "DIWALI20"}]))

        await admin_service.create_coupon(admin_supabase, "admin-1", {"code": " diwali20 ", "discount_percentage": 20})

        assert coupons.args_of("insert")[0][0]["code"] == "DIWALI20"

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, admin_supabase):
        with pytest.raises(ValueError):
            await admin_service.set_coupon_status(admin_supabase, "admin-1", "c-1", "expired")


class TestSiteContent:
    """Tests for sections, banners and settings"""

    @pytest.mark.asyncio
    async def test_new_section_inserted(self, admin_supabase, db_response):
        content = admin_supabase.on(
            "site_content",
            db_response([]),
            db_response([{"id": "sc-1", "section": "about"}]),
        )

        await admin_service.save_section(admin_supabase, "admin-1", "about", {"body": "<p>Since 1950</p>"})

        assert content.args_of("insert") == [({"section": "about", "content": {"body": "<p>Since 1950</p>"}},)]
        assert _audit_rows(admin_supabase)[0]["action"] == "create_section"

    @pytest.mark.asyncio
    async def test_existing_section_updated(self, admin_supabase, db_response):
        content = admin_supabase.on(
            "site_content",
            db_response([{"id": "sc-1"}]),
            db_response([{"id": "sc-1", "section": "homepage_hero"}]),
        )

        await admin_service.save_banners(admin_supabase, "admin-1", [{"image": "https://cdn.example/b.jpg"}])

        assert content.args_of("update") == [({"content": {"bannerSlides": [{"image": "https://cdn.example/b.jpg"}]}},)]
        assert ("section", "homepage_hero") in content.args_of("eq")

    @pytest.mark.asyncio
    async def test_negative_delivery_charge_rejected(self, admin_supabase):
        with pytest.raises(ValueError, match="negative"):
            await admin_service.update_settings(admin_supabase, "admin-1", {"delivery_charge": -1})

    @pytest.mark.asyncio
    async def test_non_numeric_delivery_charge_rejected(self, admin_supabase):
        with pytest.raises(ValueError, match="number"):
            await admin_service.update_settings(admin_supabase, "admin-1", {"delivery_charge": "free"})


class TestCategories:
    """Tests for category deletion"""

    @pytest.mark.asyncio
    async def test_delete_blocked_by_products(self, admin_supabase, db_response):
        admin_supabase.on("products", db_response([{"id": "prod-1"}]))

        with pytest.raises(ResourceInUseError) as exc_info:
            await admin_service.delete_category(admin_supabase, "admin-1", "cat-1")

        assert exc_info.value.code == "category_has_products"


class TestAuditLog:
    """Tests for record_audit_log"""

    def test_failure_is_swallowed(self, admin_supabase):
        admin_supabase.on("admin_audit_logs", Exception("insert denied"))

        admin_service.record_audit_log(admin_supabase, "admin-1", "delete_review", "review", "r-1")


class TestActivityLog:
    """Tests for the before/after activity history"""

    @pytest.mark.asyncio
    async def test_product_create_logged_without_old_data(self, admin_supabase, db_response):
        created = {"id": "prod-1", "name": "Saree", "price": 2499}
        admin_supabase.on("products", db_response([created]))

        await admin_service.create_product(admin_supabase, "admin-1", {"name": "Saree", "price": 2499})

        assert _activity_rows(admin_supabase) == [{
            "user_id": "admin-1",
            "action_type": "create",
            "entity_type": "product",
            "entity_id": "prod-1",
            "old_data": None,
            "new_data": created,
        }]

    @pytest.mark.asyncio
    async def test_product_update_logs_old_and_new(self, admin_supabase, db_response):
        before = {"id": "prod-1", "name": "Saree", "price": 2499}
        after = {"id": "prod-1", "name": "Saree", "price": 2199}
        products = admin_supabase.on("products", db_response([before]), db_response([after]))

        updated = await admin_service.update_product(admin_supabase, "admin-1", "prod-1", {"price": 2199})

        assert updated == after
        assert products.args_of("update") == [({"price": 2199},)]
        activity = _activity_rows(admin_supabase)[0]
        assert activity["action_type"] == "update"
        assert activity["old_data"] == before
        assert activity["new_data"] == after

    @pytest.mark.asyncio
    async def test_product_delete_logs_deleted_row(self, admin_supabase, db_response):
        admin_supabase.on("order_items", db_response([]))
        admin_supabase.on("products", db_response([{"id": "prod-1", "name": "Saree"}]))

        await admin_service.delete_product(admin_supabase, "admin-1", "prod-1")

        activity = _activity_rows(admin_supabase)[0]
        assert activity["action_type"] == "delete"
        assert activity["old_data"] == {"id": "prod-1", "name": "Saree"}
        assert activity["new_data"] is None

    @pytest.mark.asyncio
    async def test_bulk_delete_logs_each_product(self, admin_supabase, db_response):
        admin_supabase.on("order_items", db_response([]))
        admin_supabase.on("products", db_response([{"id": "prod-1"}, {"id": "prod-2"}]))

        await admin_service.bulk_delete_products(admin_supabase, "admin-1", ["prod-1", "prod-2"])

        assert [row["entity_id"] for row in _activity_rows(admin_supabase)] == ["prod-1", "prod-2"]
        assert _activity_rows(admin_supabase)[1]["old_data"] == {"id": "prod-2"}

    @pytest.mark.asyncio
    async def test_order_status_change_logged(self, admin_supabase, db_response):
        admin_supabase.on(
            "orders",
            db_response([{"id": "order-1", "status": "processing"}]),
            db_response([{"id": "order-1", "status": "shipped"}]),
        )

        await admin_service.update_order_status(admin_supabase, "admin-1", "order-1", "shipped")

        activity = _activity_rows(admin_supabase)[0]
        assert activity["entity_type"] == "order"
        assert activity["old_data"]["status"] == "processing"
        assert activity["new_data"]["status"] == "shipped"

    @pytest.mark.asyncio
    async def test_coupon_update_logs_old_and_new(self, admin_supabase, db_response):
        admin_supabase.on(
            "coupons",
            db_response([{"id": "c-1", "code": "DIWALI20", "discount_percentage": 20}]),
            db_response([{"id": "c-1", "code": "DIWALI25", "discount_percentage": 25}]),
        )

        await admin_service.update_coupon(
            admin_supabase, "admin-1", "c-1", {"code": "diwali25", "discount_percentage": 25},
        )

        activity = _activity_rows(admin_supabase)[0]
        assert activity["entity_type"] == "coupon"
        assert activity["old_data"]["code"] == "DIWALI20"
        assert activity["new_data"]["code"] == "DIWALI25"

    @pytest.mark.asyncio
    async def test_coupon_toggle_logs_status_change(self, admin_supabase, db_response):
        admin_supabase.on(
            "coupons",
            db_response([{"id": "c-1", "status": "active"}]),
            db_response([{"id": "c-1", "status": "inactive"}]),
        )

        await admin_service.set_coupon_status(admin_supabase, "admin-1", "c-1", "inactive")

        activity = _activity_rows(admin_supabase)[0]
        assert activity["old_data"] == {"status": "active"}
        assert activity["new_data"] == {"status": "inactive"}

    @pytest.mark.asyncio
    async def test_coupon_delete_logged(self, admin_supabase, db_response):
        admin_supabase.on("coupons", db_response([{"id": "c-1", "code": "DIWALI20"}]))

        assert await admin_service.delete_coupon(admin_supabase, "admin-1", "c-1") is True

        activity = _activity_rows(admin_supabase)[0]
        assert activity["action_type"] == "delete"
        assert activity["old_data"] == {"id": "c-1", "code": "DIWALI20"}

    @pytest.mark.asyncio
    async def test_unknown_coupon_not_updated(self, admin_supabase, db_response):
        coupons = admin_supabase.on("coupons", db_response([]))

        assert await admin_service.update_coupon(admin_supabase, "admin-1", "c-x", {"code": "X"}) is None
        assert coupons.args_of("update") == []
        assert _activity_rows(admin_supabase) == []

    def test_activity_failure_is_swallowed(self, admin_supabase):
        admin_supabase.on("admin_activity_log", Exception("insert denied"))

        admin_service.record_activity(admin_supabase, "admin-1", "delete", "coupon", "c-1")


class TestCustomersAndAuthEvents:
    """Tests for list_customers and list_auth_events"""

    @pytest.mark.asyncio
    async def test_customers_carry_order_counts(self, admin_supabase, db_response):
        admin_supabase.on("profiles", db_response([
            {"id": "u-1", "full_name": "Asha"},
            {"id": "u-2", "full_name": "Meera"},
        ]))
        orders = admin_supabase.on("orders", db_response(None, count=3), db_response(None, count=None))

        customers = await admin_service.list_customers(admin_supabase)

        assert customers == [
            {"id": "u-1", "full_name": "Asha", "order_count": 3},
            {"id": "u-2", "full_name": "Meera", "order_count": 0},
        ]
        assert orders.args_of("eq") == [("user_id", "u-1"), ("user_id", "u-2")]

    @pytest.mark.asyncio
    async def test_auth_events_filtered(self, admin_supabase, db_response):
        events = admin_supabase.on("auth_events", db_response([{"id": "e-1", "event_type": "login_failed"}]))

        rows = await admin_service.list_auth_events(
            admin_supabase, event_type="login_failed", email="asha@",
        )

        assert rows == [{"id": "e-1", "event_type": "login_failed"}]
        assert events.args_of("eq") == [("event_type", "login_failed")]
        assert events.args_of("ilike") == [("email", "%asha@%")]
        assert events.args_of("limit") == [(100,)]

    @pytest.mark.asyncio
    async def test_auth_events_unfiltered(self, admin_supabase):
        events = admin_supabase.table("auth_events")

        assert await admin_service.list_auth_events(admin_supabase) == []
        assert events.args_of("eq") == []
        assert events.args_of("ilike") == []
