"""
Tests for the profile service.
"""

import pytest

from storefront.services.profile_service import get_order_history, get_profile, update_profile


class TestGetProfile:
    """Tests for get_profile"""

    @pytest.mark.asyncio
    async def test_returns_profile(self, fake_supabase, db_response):
        query = fake_supabase.on("profiles", db_response([{"id": "user-1", "full_name": "Asha"}]))

        profile = await get_profile(fake_supabase, "user-1")

        assert profile["full_name"] == "Asha"
        assert query.args_of("eq") == [("id", "user-1")]

    @pytest.mark.asyncio
    async def test_missing_profile(self, fake_supabase, db_response):
        fake_supabase.on("profiles", db_response([]))

        assert await get_profile(fake_supabase, "user-1") is None


class TestUpdateProfile:
    """Tests for update_profile"""

    @pytest.mark.asyncio
    async def test_requires_fields(self, fake_supabase):
        with pytest.raises(ValueError):
            await update_profile(fake_supabase, "user-1")

    @pytest.mark.asyncio
    async def test_updates_given_fields(self, fake_supabase, db_response):
        query = fake_supabase.on("profiles", db_response([{"id": "user-1", "city": "Pune"}]))

        profile = await update_profile(fake_supabase, "user-1", city="Pune", mobile_number="9876543210")

        assert profile["city"] == "Pune"
        assert query.args_of("update") == [({"city": "Pune", "mobile_number": "9876543210"},)]

    @pytest.mark.asyncio
    async def test_no_row_returned_raises(self, fake_supabase, db_response):
        fake_supabase.on("profiles", db_response([]))

        with pytest.raises(Exception, match="Failed to update profile"):
            await update_profile(fake_supabase, "user-1", city="Pune")


class TestOrderHistory:
    """Tests for get_order_history"""

    @pytest.mark.asyncio
    async def test_orders_with_items_newest_first(self, fake_supabase, db_response):
        query = fake_supabase.on("orders", db_response([{"id": "o2"}, {"id": "o1"}]))

        orders = await get_order_history(fake_supabase, "user-1")

        assert [o["id"] for o in orders] == ["o2", "o1"]
        assert query.args_of("select") == [("*, order_items(*)",)]
        assert query.args_of("order") == [("created_at",)]
