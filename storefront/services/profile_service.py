"""
Customer profile service.

Profiles are 1:1 with auth.users (profiles.id = auth.uid()) and hold the
contact details used for order emails and shipping: full_name, email,
mobile_number, city, state.
"""

import logging
from typing import Any, Dict, List, Optional, cast

from supabase import Client

logger = logging.getLogger(__name__)


async def get_profile(
    supabase_client: Client,
    user_id: str
) -> Optional[Dict[str, Any]]:
    """
    Fetch the user's profile.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID

    Returns:
        The profile dict, or None if not found

    Security:
        - RLS enforces id = auth.uid()
    """
    logger.debug(f"Fetching profile for user {user_id}")

    result = (
        supabase_client.table("profiles")
        .select("*")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )

    if not result.data:
        logger.warning(f"Profile not found for user {user_id}")
        return None

    return cast(Dict[str, Any], result.data[0])


async def update_profile(
    supabase_client: Client,
    user_id: str,
    **updates: Any
) -> Dict[str, Any]:
    """
    Update profile fields (full_name, mobile_number, city, state).

    Returns:
        The updated profile record

    Raises:
        ValueError: If no fields were provided
        Exception: If the update returns no row
    """
    if not updates:
        raise ValueError("No fields to update")

    logger.info(f"Updating profile for user {user_id}: {list(updates.keys())}")

    result = (
        supabase_client.table("profiles")
        .update(updates)
        .eq("id", user_id)
        .execute()
    )

    if not result.data:
        raise Exception("Failed to update profile: no data returned")

    return cast(Dict[str, Any], result.data[0])


async def get_order_history(
    supabase_client: Client,
    user_id: str
) -> List[Dict[str, Any]]:
    """Orders of the user with their item snapshots, newest first."""
    result = (
        supabase_client.table("orders")
        .select("*, order_items(*)")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )

    orders = cast(List[Dict[str, Any]], result.data or [])
    logger.debug(f"Fetched {len(orders)} orders for user {user_id}")
    return orders
