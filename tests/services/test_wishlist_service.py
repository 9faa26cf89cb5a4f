"""
Tests for the wishlist.
"""

import pytest

from storefront.services.wishlist_service import add_to_wishlist, remove_from_wishlist


class TestWishlist:
    """Tests for add_to_wishlist / remove_from_wishlist"""

    @pytest.mark.asyncio
    async def test_add_new_product(self, fake_supabase, db_response):
        query = fake_supabase.on("wishlist", db_response([]), db_response([{"id": "w-1"}]))

        row = await add_to_wishlist(fake_supabase, "user-1", "prod-1")

        assert row == {"id": "w-1"}
        assert query.args_of("insert") == [({"user_id": "user-1", "product_id": "prod-1"},)]

    @pytest.mark.asyncio
    async def test_add_existing_product_is_idempotent(self, fake_supabase, db_response):
        query = fake_supabase.on("wishlist", db_response([{"id": "w-1", "product_id": "prod-1"}]))

        row = await add_to_wishlist(fake_supabase, "user-1", "prod-1")

        assert row["id"] == "w-1"
        assert query.args_of("insert") == []

    @pytest.mark.asyncio
    async def test_remove(self, fake_supabase, db_response):
        fake_supabase.on("wishlist", db_response([{"id": "w-1"}]), db_response([]))

        assert await remove_from_wishlist(fake_supabase, "user-1", "prod-1") is True
        assert await remove_from_wishlist(fake_supabase, "user-1", "prod-1") is False
