"""
Shopping cart persistence service.

Cart rows live in `cart_items` (one row per user/product pair) and carry the
selected add-on ids. RLS restricts every query to the owner, the explicit
user_id filters below keep the queries readable and index-friendly.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

logger = logging.getLogger(__name__)


async def get_cart_items(
    supabase_client: Client,
    user_id: str,
) -> List[Dict[str, Any]]:
    """
    Fetch the user's cart lines joined with their products.

    Returns:
        cart_items rows, each with a nested 'products' dict
    """
    result = (
        supabase_client.table("cart_items")
        .select("*, products(*)")
        .eq("user_id", user_id)
        .order("created_at")
        .execute()
    )

    items = cast(List[Dict[str, Any]], result.data or [])
    logger.debug(f"Fetched {len(items)} cart items for user {user_id}")
    return items


async def get_add_ons(supabase_client: Client) -> List[Dict[str, Any]]:
    """Fetch all purchasable add-ons (e.g. fall/pico, blouse stitching)."""
    result = supabase_client.table("add_ons").select("*").order("name").execute()
    return cast(List[Dict[str, Any]], result.data or [])


async def add_to_cart(
    supabase_client: Client,
    user_id: str,
    product_id: str,
    selected_add_ons: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Add a product to the cart.

    If the product is already in the cart its quantity is increased by one
    and the add-on selection is replaced with the new one.

    Returns:
        The inserted or updated cart_items row

    Raises:
        Exception: If the database operation returns no row
    """
    add_ons = selected_add_ons or []

    existing = (
        supabase_client.table("cart_items")
        .select("*")
        .eq("user_id", user_id)
        .eq("product_id", product_id)
        .limit(1)
        .execute()
    )
    existing_rows = cast(List[Dict[str, Any]], existing.data or [])

    if existing_rows:
        item = existing_rows[0]
        new_quantity = int(item.get("quantity") or 0) + 1
        result = (
            supabase_client.table("cart_items")
            .update({"quantity": new_quantity, "selected_add_ons": add_ons})
            .eq("id", item["id"])
            .execute()
        )
        logger.info(f"Cart item {item['id']} quantity increased to {new_quantity}")
    else:
        result = (
            supabase_client.table("cart_items")
            .insert({
                "user_id": user_id,
                "product_id": product_id,
                "quantity": 1,
                "selected_add_ons": add_ons,
            })
            .execute()
        )
        logger.info(f"Product {product_id} added to cart for user {user_id}")

    if not result.data:
        raise Exception("Failed to save cart item: no data returned")

    return cast(Dict[str, Any], result.data[0])


async def update_cart_quantity(
    supabase_client: Client,
    user_id: str,
    item_id: str,
    quantity: int,
) -> Optional[Dict[str, Any]]:
    """
    Set the quantity of a cart line.

    Returns:
        Updated row, or None if the item does not exist for this user

    Raises:
        ValueError: If quantity < 1 (use remove_cart_item instead)
    """
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")

    result = (
        supabase_client.table("cart_items")
        .update({"quantity": quantity})
        .eq("id", item_id)
        .eq("user_id", user_id)
        .execute()
    )

    if not result.data:
        logger.warning(f"Cart item {item_id} not found for user {user_id}")
        return None

    return cast(Dict[str, Any], result.data[0])


async def remove_cart_item(
    supabase_client: Client,
    user_id: str,
    item_id: str,
) -> bool:
    """Delete one cart line. Returns False if nothing was deleted."""
    result = (
        supabase_client.table("cart_items")
        .delete()
        .eq("id", item_id)
        .eq("user_id", user_id)
        .execute()
    )
    deleted = bool(result.data)
    if deleted:
        logger.info(f"Cart item {item_id} removed for user {user_id}")
    return deleted


async def clear_cart(supabase_client: Client, user_id: str) -> None:
    """Remove every cart line of the user (after a successful order)."""
    supabase_client.table("cart_items").delete().eq("user_id", user_id).execute()
    logger.info(f"Cart cleared for user {user_id}")
