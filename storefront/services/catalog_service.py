"""
Public catalog reads: products, categories and add-ons.

All functions take the anon (or any) Supabase client; visibility is decided
by RLS policies for the anon role.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

logger = logging.getLogger(__name__)

PRODUCT_SELECT = "*, categories(name)"


async def list_products(
    supabase_client: Client,
    category_id: Optional[str] = None,
    available_only: bool = False,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    colors: Optional[List[str]] = None,
    fabric: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """
    List products with optional shop filters, newest first.

    Args:
        supabase_client: Supabase client
        category_id: Only products of this category
        available_only: Only products with available = true
        min_price: Inclusive lower price bound
        max_price: Inclusive upper price bound
        colors: Only products whose color is one of these
        fabric: Only products of this fabric
        limit: Page size
        offset: Rows to skip

    Returns:
        products rows with a nested 'categories' dict
    """
    query = supabase_client.table("products").select(PRODUCT_SELECT)

    if category_id:
        query = query.eq("category_id", category_id)
    if available_only:
        query = query.eq("available", True)
    if min_price is not None:
        query = query.gte("price", min_price)
    if max_price is not None:
        query = query.lte("price", max_price)
    if colors:
        query = query.in_("color", colors)
    if fabric:
        query = query.eq("fabric", fabric)

    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )

    products = cast(List[Dict[str, Any]], result.data or [])
    logger.debug(f"Listed {len(products)} products (offset={offset}, limit={limit})")
    return products


async def list_best_sellers(supabase_client: Client, limit: int = 8) -> List[Dict[str, Any]]:
    """Available products flagged as best sellers."""
    result = (
        supabase_client.table("products")
        .select(PRODUCT_SELECT)
        .eq("is_best_seller", True)
        .eq("available", True)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def list_new_arrivals(supabase_client: Client, limit: int = 8) -> List[Dict[str, Any]]:
    result = (
        supabase_client.table("products")
        .select(PRODUCT_SELECT)
        .eq("available", True)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def get_product(
    supabase_client: Client,
    product_id: str,
) -> Optional[Dict[str, Any]]:
    """Fetch one product, or None if it does not exist."""
    result = (
        supabase_client.table("products")
        .select(PRODUCT_SELECT)
        .eq("id", product_id)
        .limit(1)
        .execute()
    )

    if not result.data:
        logger.info(f"Product {product_id} not found")
        return None

    return cast(Dict[str, Any], result.data[0])


async def get_related_products(
    supabase_client: Client,
    product: Dict[str, Any],
    limit: int = 4,
) -> List[Dict[str, Any]]:
    """Other available products of the same category."""
    category_id = product.get("category_id")
    if not category_id:
        return []

    result = (
        supabase_client.table("products")
        .select(PRODUCT_SELECT)
        .eq("category_id", category_id)
        .eq("available", True)
        .neq("id", product["id"])
        .limit(limit)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def list_categories(supabase_client: Client) -> List[Dict[str, Any]]:
    result = supabase_client.table("categories").select("*").order("name").execute()
    return cast(List[Dict[str, Any]], result.data or [])


async def list_add_ons(supabase_client: Client) -> List[Dict[str, Any]]:
    result = supabase_client.table("add_ons").select("*").order("name").execute()
    return cast(List[Dict[str, Any]], result.data or [])
