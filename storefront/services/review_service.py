"""
Product reviews.

Customers may review any existing product. Reviews submitted from the
storefront are never marked as verified purchases; only admins set that flag.
"""

import logging
from typing import Any, Dict, List, cast

from supabase import Client

logger = logging.getLogger(__name__)

REVIEW_SELECT = "*, products(name), profiles(full_name)"
MIN_COMMENT_LENGTH = 10
MAX_COMMENT_LENGTH = 500


async def list_recent_reviews(supabase_client: Client, limit: int = 20) -> List[Dict[str, Any]]:
    """Latest reviews across the store with product and reviewer names."""
    result = (
        supabase_client.table("reviews")
        .select(REVIEW_SELECT)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def list_product_reviews(supabase_client: Client, product_id: str) -> List[Dict[str, Any]]:
    result = (
        supabase_client.table("reviews")
        .select("*, profiles(full_name)")
        .eq("product_id", product_id)
        .order("created_at", desc=True)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def submit_review(
    supabase_client: Client,
    user_id: str,
    product_id: str,
    rating: int,
    comment: str,
) -> Dict[str, Any]:
    """
    Create a review for a product.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID
        product_id: Reviewed product
        rating: 1 to 5 stars
        comment: Review text, 10 to 500 characters after trimming

    Returns:
        The created review row

    Raises:
        ValueError: Invalid rating/comment or unknown product
        Exception: If the insert returns no row
    """
    if rating < 1 or rating > 5:
        raise ValueError("Rating must be between 1 and 5")

    text = (comment or "").strip()
    if len(text) < MIN_COMMENT_LENGTH:
        raise ValueError(f"Review must be at least {MIN_COMMENT_LENGTH} characters")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValueError(f"Review must be less than {MAX_COMMENT_LENGTH} characters")

    product = (
        supabase_client.table("products")
        .select("id")
        .eq("id", product_id)
        .limit(1)
        .execute()
    )
    if not product.data:
        raise ValueError("Product not found")

    result = (
        supabase_client.table("reviews")
        .insert({
            "user_id": user_id,
            "product_id": product_id,
            "rating": rating,
            "comment": text,
            "verified_purchase": False,
        })
        .execute()
    )

    if not result.data:
        raise Exception("Failed to submit review: no data returned")

    logger.info(f"Review submitted by user {user_id} for product {product_id}")
    return cast(Dict[str, Any], result.data[0])
