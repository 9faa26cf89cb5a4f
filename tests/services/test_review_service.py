"""
Tests for product reviews.
"""

import pytest

from storefront.services.review_service import submit_review

COMMENT = "Beautiful weave, exactly as pictured."


class TestSubmitReview:
    """Tests for submit_review"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_out_of_range(self, fake_supabase, rating):
        with pytest.raises(ValueError, match="Rating"):
            await submit_review(fake_supabase, "user-1", "prod-1", rating, COMMENT)

    @pytest.mark.asyncio
    async def test_comment_too_short_after_trim(self, fake_supabase):
        with pytest.raises(ValueError, match="at least 10"):
            await submit_review(fake_supabase, "user-1", "prod-1", 5, "   nice    ")

    @pytest.mark.asyncio
    async def test_comment_too_long(self, fake_supabase):
        with pytest.raises(ValueError, match="less than 500"):
            await submit_review(fake_supabase, "user-1", "prod-1", 5, "x" * 501)

    @pytest.mark.asyncio
    async def test_unknown_product(self, fake_supabase, db_response):
        fake_supabase.on("products", db_response([]))

        with pytest.raises(ValueError, match="Product not found"):
            await submit_review(fake_supabase, "user-1", "prod-x", 5, COMMENT)

    @pytest.mark.asyncio
    async def test_review_stored_unverified(self, fake_supabase, db_response):
        fake_supabase.on("products", db_response([{"id": "prod-1"}]))
        reviews = fake_supabase.on("reviews", db_response([{"id": "rev-1", "rating": 4}]))

        review = await submit_review(fake_supabase, "user-1", "prod-1", 4, f"  {COMMENT}  ")

        assert review["id"] == "rev-1"
        assert reviews.args_of("insert") == [({
            "user_id": "user-1",
            "product_id": "prod-1",
            "rating": 4,
            "comment": COMMENT,
            "verified_purchase": False,
        },)]
