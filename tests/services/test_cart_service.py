"""
Tests for cart persistence.
"""

import pytest

from storefront.services.cart_service import (
    add_to_cart,
    clear_cart,
    remove_cart_item,
    update_cart_quantity,
)


class TestAddToCart:
    """Tests for add_to_cart"""

    @pytest.mark.asyncio
    async def test_new_product_inserted_with_quantity_one(self, fake_supabase, db_response):
        query = fake_supabase.on(
            "cart_items",
            db_response([]),
            db_response([{"id": "item-1", "product_id": "prod-1", "quantity": 1}]),
        )

        item = await add_to_cart(fake_supabase, "user-1", "prod-1", ["fall-pico"])

        assert item["id"] == "item-1"
        assert query.args_of("insert") == [({
            "user_id": "user-1",
            "product_id": "prod-1",
            "quantity": 1,
            "selected_add_ons": ["fall-pico"],
        },)]

    @pytest.mark.asyncio
    async def test_existing_product_quantity_incremented(self, fake_supabase, db_response):
        query = fake_supabase.on(
            "cart_items",
            db_response([{"id": "item-1", "product_id": "prod-1", "quantity": 2, "selected_add_ons": []}]),
            db_response([{"id": "item-1", "product_id": "prod-1", "quantity": 3}]),
        )

        item = await add_to_cart(fake_supabase, "user-1", "prod-1", ["blouse"])

        assert item["quantity"] == 3
        assert query.args_of("update") == [({"quantity": 3, "selected_add_ons": ["blouse"]},)]
        assert query.args_of("insert") == []

    @pytest.mark.asyncio
    async def test_no_row_returned_raises(self, fake_supabase, db_response):
        fake_supabase.on("cart_items", db_response([]), db_response([]))

        with pytest.raises(Exception, match="Failed to save cart item"):
            await add_to_cart(fake_supabase, "user-1", "prod-1")


class TestUpdateQuantity:
    """Tests for update_cart_quantity"""

    @pytest.mark.asyncio
    async def test_quantity_below_one_rejected(self, fake_supabase):
        with pytest.raises(ValueError):
            await update_cart_quantity(fake_supabase, "user-1", "item-1", 0)

    @pytest.mark.asyncio
    async def test_missing_item_returns_none(self, fake_supabase, db_response):
        fake_supabase.on("cart_items", db_response([]))

        assert await update_cart_quantity(fake_supabase, "user-1", "item-x", 2) is None

    @pytest.mark.asyncio
    async def test_update_scoped_to_user(self, fake_supabase, db_response):
        query = fake_supabase.on("cart_items", db_response([{"id": "item-1", "quantity": 4}]))

        item = await update_cart_quantity(fake_supabase, "user-1", "item-1", 4)

        assert item["quantity"] == 4
        assert ("user_id", "user-1") in query.args_of("eq")


class TestRemoveAndClear:
    """Tests for remove_cart_item and clear_cart"""

    @pytest.mark.asyncio
    async def test_remove_reports_deletion(self, fake_supabase, db_response):
        fake_supabase.on("cart_items", db_response([{"id": "item-1"}]), db_response([]))

        assert await remove_cart_item(fake_supabase, "user-1", "item-1") is True
        assert await remove_cart_item(fake_supabase, "user-1", "item-1") is False

    @pytest.mark.asyncio
    async def test_clear_deletes_all_user_rows(self, fake_supabase):
        await clear_cart(fake_supabase, "user-1")

        query = fake_supabase.queries["cart_items"]
        assert len(query.args_of("delete")) == 1
        assert query.args_of("eq") == [("user_id", "user-1")]
