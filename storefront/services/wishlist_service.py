"""
Wishlist service: products a customer saved for later.
"""

import logging
from typing import Any, Dict, List, cast

from supabase import Client

logger = logging.getLogger(__name__)


async def get_wishlist(supabase_client: Client, user_id: str) -> List[Dict[str, Any]]:
    """Wishlist rows joined with their products, newest first."""
    result = (
        supabase_client.table("wishlist")
        .select("*, products(*)")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def add_to_wishlist(
    supabase_client: Client,
    user_id: str,
    product_id: str,
) -> Dict[str, Any]:
    """
    Save a product to the wishlist. Adding an already saved product returns
    the existing row.

    Raises:
        Exception: If the insert returns no row
    """
    existing = (
        supabase_client.table("wishlist")
        .select("*")
        .eq("user_id", user_id)
        .eq("product_id", product_id)
        .limit(1)
        .execute()
    )
    if existing.data:
        return cast(Dict[str, Any], existing.data[0])

    result = (
        supabase_client.table("wishlist")
        .insert({"user_id": user_id, "product_id": product_id})
        .execute()
    )
    if not result.data:
        raise Exception("Failed to add to wishlist: no data returned")

    logger.info(f"Product {product_id} added to wishlist of user {user_id}")
    return cast(Dict[str, Any], result.data[0])


async def remove_from_wishlist(
    supabase_client: Client,
    user_id: str,
    product_id: str,
) -> bool:
    """Returns False if the product was not in the wishlist."""
    result = (
        supabase_client.table("wishlist")
        .delete()
        .eq("user_id", user_id)
        .eq("product_id", product_id)
        .execute()
    )
    return bool(result.data)
