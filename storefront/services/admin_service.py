"""
Admin back-office service.

Every function takes the service role client (RLS bypassed); callers must
have passed require_admin. Each mutation appends an admin_audit_logs row;
product, order and coupon changes also append an admin_activity_log row
with the before/after data.
Payloads pass through sanitize_recursively before they are stored.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from storefront.utils.constants import (
    ADMIN_ORDER_STATUSES,
    COUPON_STATUSES,
    HOMEPAGE_HERO_SECTION,
    SETTINGS_SECTION,
)
from storefront.utils.sanitize import sanitize_recursively

logger = logging.getLogger(__name__)


class ResourceInUseError(Exception):
    """
    Raised when a delete is blocked by rows that still reference the resource.

    Attributes:
        code: product_in_orders or category_has_products
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def record_audit_log(
    admin_client: Client,
    user_id: str,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Append an admin_audit_logs row. Failures are logged, never raised."""
    try:
        admin_client.table("admin_audit_logs").insert({
            "user_id": user_id,
            "action": action,
            "resource_id": resource_id,
            "resource_type": resource_type,
            "details": details or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
    except Exception as e:
        logger.warning(f"Audit log insert failed for {action}: {e}")


def record_activity(
    admin_client: Client,
    user_id: str,
    action_type: str,
    entity_type: str,
    entity_id: Optional[str],
    old_data: Optional[Dict[str, Any]] = None,
    new_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Append an admin_activity_log row: the before/after history shown in the
    back-office for product, order and coupon changes.

    Args:
        action_type: create, update or delete
        entity_type: product, order or coupon
        old_data: Row before the change (None for creates)
        new_data: Row or fields after the change (None for deletes)

    Failures are logged, never raised.
    """
    try:
        admin_client.table("admin_activity_log").insert({
            "user_id": user_id,
            "action_type": action_type,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "old_data": old_data,
            "new_data": new_data,
        }).execute()
    except Exception as e:
        logger.warning(f"Activity log insert failed for {action_type} {entity_type} {entity_id}: {e}")


def _fetch_row(admin_client: Client, table: str, row_id: str) -> Optional[Dict[str, Any]]:
    result = admin_client.table(table).select("*").eq("id", row_id).limit(1).execute()
    if not result.data:
        return None
    return cast(Dict[str, Any], result.data[0])


def _first_row(result: Any, what: str) -> Dict[str, Any]:
    if not result.data:
        raise Exception(f"Failed to {what}: no data returned")
    return cast(Dict[str, Any], result.data[0])


# =============================================================================
# Products
# =============================================================================

async def create_product(admin_client: Client, user_id: str, product: Dict[str, Any]) -> Dict[str, Any]:
    """
    Raises:
        ValueError: If name or price is missing
    """
    if not product.get("name") or product.get("price") is None:
        raise ValueError("Invalid product payload")

    safe_product = sanitize_recursively(product)
    created = _first_row(
        admin_client.table("products").insert(safe_product).execute(),
        "create product",
    )

    record_audit_log(admin_client, user_id, "create_product", "product", str(created["id"]), safe_product)
    record_activity(admin_client, user_id, "create", "product", str(created["id"]), None, created)
    logger.info(f"Product {created['id']} created by admin {user_id}")
    return created


async def update_product(
    admin_client: Client,
    user_id: str,
    product_id: str,
    updates: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Returns the updated product, or None if it does not exist."""
    previous = _fetch_row(admin_client, "products", product_id)
    if previous is None:
        return None

    safe_updates = sanitize_recursively(updates)
    result = admin_client.table("products").update(safe_updates).eq("id", product_id).execute()
    if not result.data:
        return None

    updated = cast(Dict[str, Any], result.data[0])
    record_audit_log(admin_client, user_id, "update_product", "product", product_id, safe_updates)
    record_activity(admin_client, user_id, "update", "product", product_id, previous, updated)
    return updated


async def delete_product(admin_client: Client, user_id: str, product_id: str) -> bool:
    """
    Delete a product that no order references.

    Returns:
        False if the product does not exist

    Raises:
        ResourceInUseError: The product is part of existing orders
    """
    referenced = (
        admin_client.table("order_items")
        .select("product_id")
        .eq("product_id", product_id)
        .limit(1)
        .execute()
    )
    if referenced.data:
        raise ResourceInUseError(
            "product_in_orders",
            "Cannot delete product - part of existing orders",
        )

    result = admin_client.table("products").delete().eq("id", product_id).execute()
    if not result.data:
        return False

    record_audit_log(admin_client, user_id, "delete_product", "product", product_id)
    record_activity(admin_client, user_id, "delete", "product", product_id, result.data[0], None)
    return True


async def bulk_delete_products(
    admin_client: Client,
    user_id: str,
    product_ids: List[str],
) -> Dict[str, List[str]]:
    """
    Delete every product in product_ids that no order references.

    Returns:
        {"deleted": [...], "blocked": [...]}
    """
    if not product_ids:
        return {"deleted": [], "blocked": []}

    referenced = (
        admin_client.table("order_items")
        .select("product_id")
        .in_("product_id", product_ids)
        .execute()
    )
    in_orders = {str(row["product_id"]) for row in (referenced.data or [])}
    to_delete = [pid for pid in product_ids if pid not in in_orders]
    blocked = [pid for pid in product_ids if pid in in_orders]

    if to_delete:
        result = admin_client.table("products").delete().in_("id", to_delete).execute()
        deleted_rows = {str(row.get("id")): row for row in (result.data or [])}
        for pid in to_delete:
            record_audit_log(admin_client, user_id, "delete_product", "product", pid)
            record_activity(admin_client, user_id, "delete", "product", pid, deleted_rows.get(pid), None)

    logger.info(f"Bulk delete by admin {user_id}: deleted={len(to_delete)}, blocked={len(blocked)}")
    return {"deleted": to_delete, "blocked": blocked}


# =============================================================================
# Orders
# =============================================================================

async def list_orders(
    admin_client: Client,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    query = admin_client.table("orders").select("*, profiles(full_name, email), order_items(*)")
    if status:
        query = query.eq("status", status)
    result = (
        query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def update_order_status(
    admin_client: Client,
    user_id: str,
    order_id: str,
    new_status: str,
) -> Optional[Dict[str, Any]]:
    """
    Move an order to a new fulfilment status.

    Returns:
        The updated order, or None if it does not exist

    Raises:
        ValueError: If new_status is not an admin-settable status
    """
    if new_status not in ADMIN_ORDER_STATUSES:
        raise ValueError(f"Invalid status. Allowed: {', '.join(ADMIN_ORDER_STATUSES)}")

    previous = _fetch_row(admin_client, "orders", order_id)
    if previous is None:
        return None

    previous_status = previous.get("status")

    updated = _first_row(
        admin_client.table("orders")
        .update({"status": new_status, "updated_at": datetime.now(timezone.utc).isoformat()})
        .eq("id", order_id)
        .execute(),
        "update order status",
    )

    record_audit_log(
        admin_client, user_id, "update_order_status", "order", order_id,
        {"previous_status": previous_status, "new_status": new_status},
    )
    record_activity(admin_client, user_id, "update", "order", order_id, previous, updated)
    logger.info(f"Order {order_id} status {previous_status} -> {new_status} by admin {user_id}")
    return updated


# =============================================================================
# Coupons
# =============================================================================

async def list_coupons(admin_client: Client) -> List[Dict[str, Any]]:
    result = admin_client.table("coupons").select("*").order("created_at", desc=True).execute()
    return cast(List[Dict[str, Any]], result.data or [])


async def create_coupon(admin_client: Client, user_id: str, coupon: Dict[str, Any]) -> Dict[str, Any]:
    data = sanitize_recursively(coupon)
    data["code"] = str(data["code"]).strip().upper()
    created = _first_row(admin_client.table("coupons").insert(data).execute(), "create coupon")
    record_audit_log(admin_client, user_id, "create_coupon", "coupon", str(created["id"]), data)
    record_activity(admin_client, user_id, "create", "coupon", str(created["id"]), None, created)
    return created


async def update_coupon(
    admin_client: Client,
    user_id: str,
    coupon_id: str,
    updates: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    previous = _fetch_row(admin_client, "coupons", coupon_id)
    if previous is None:
        return None

    data = sanitize_recursively(updates)
    if data.get("code"):
        data["code"] = str(data["code"]).strip().upper()
    result = admin_client.table("coupons").update(data).eq("id", coupon_id).execute()
    if not result.data:
        return None

    updated = cast(Dict[str, Any], result.data[0])
    record_audit_log(admin_client, user_id, "update_coupon", "coupon", coupon_id, data)
    record_activity(admin_client, user_id, "update", "coupon", coupon_id, previous, updated)
    return updated


async def delete_coupon(admin_client: Client, user_id: str, coupon_id: str) -> bool:
    result = admin_client.table("coupons").delete().eq("id", coupon_id).execute()
    if not result.data:
        return False
    record_audit_log(admin_client, user_id, "delete_coupon", "coupon", coupon_id)
    record_activity(admin_client, user_id, "delete", "coupon", coupon_id, result.data[0], None)
    return True


async def set_coupon_status(
    admin_client: Client,
    user_id: str,
    coupon_id: str,
    status: str,
) -> Optional[Dict[str, Any]]:
    """
    Raises:
        ValueError: If status is not active/inactive
    """
    if status not in COUPON_STATUSES:
        raise ValueError(f"Invalid coupon status: {status}")

    previous = _fetch_row(admin_client, "coupons", coupon_id)
    if previous is None:
        return None

    result = admin_client.table("coupons").update({"status": status}).eq("id", coupon_id).execute()
    if not result.data:
        return None
    record_audit_log(admin_client, user_id, "toggle_coupon_status", "coupon", coupon_id, {"status": status})
    record_activity(
        admin_client, user_id, "update", "coupon", coupon_id,
        {"status": previous.get("status")}, {"status": status},
    )
    return cast(Dict[str, Any], result.data[0])


# =============================================================================
# Reviews
# =============================================================================

async def list_reviews(admin_client: Client) -> List[Dict[str, Any]]:
    result = (
        admin_client.table("reviews")
        .select("*, products(name), profiles(full_name)")
        .order("created_at", desc=True)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def create_review(admin_client: Client, user_id: str, review: Dict[str, Any]) -> Dict[str, Any]:
    data = sanitize_recursively(review)
    created = _first_row(admin_client.table("reviews").insert(data).execute(), "create review")
    record_audit_log(admin_client, user_id, "create_review", "review", str(created["id"]), data)
    return created


async def update_review(
    admin_client: Client,
    user_id: str,
    review_id: str,
    updates: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    data = sanitize_recursively(updates)
    result = admin_client.table("reviews").update(data).eq("id", review_id).execute()
    if not result.data:
        return None
    record_audit_log(admin_client, user_id, "update_review", "review", review_id, data)
    return cast(Dict[str, Any], result.data[0])


async def delete_review(admin_client: Client, user_id: str, review_id: str) -> bool:
    result = admin_client.table("reviews").delete().eq("id", review_id).execute()
    if not result.data:
        return False
    record_audit_log(admin_client, user_id, "delete_review", "review", review_id)
    return True


# =============================================================================
# Site content
# =============================================================================

async def save_section(
    admin_client: Client,
    user_id: str,
    section: str,
    content: Any,
) -> Dict[str, Any]:
    """
    Insert or replace the content of a site_content section.

    Returns:
        The stored site_content row
    """
    safe_content = sanitize_recursively(content)

    existing = (
        admin_client.table("site_content")
        .select("id")
        .eq("section", section)
        .limit(1)
        .execute()
    )
    if existing.data:
        result = (
            admin_client.table("site_content")
            .update({"content": safe_content})
            .eq("section", section)
            .execute()
        )
        action = "update_section"
    else:
        result = (
            admin_client.table("site_content")
            .insert({"section": section, "content": safe_content})
            .execute()
        )
        action = "create_section"

    row = _first_row(result, f"save section {section}")
    record_audit_log(admin_client, user_id, action, "site_content", str(row.get("id") or ""), {"section": section})
    logger.info(f"Section {section} saved by admin {user_id}")
    return row


async def save_banners(admin_client: Client, user_id: str, slides: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Homepage hero carousel, stored as {"bannerSlides": [...]}."""
    return await save_section(admin_client, user_id, HOMEPAGE_HERO_SECTION, {"bannerSlides": slides})


async def update_settings(admin_client: Client, user_id: str, site_settings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Store global store settings (delivery_charge, contact details...).

    Raises:
        ValueError: If delivery_charge is present and negative or not a number
    """
    if "delivery_charge" in site_settings:
        try:
            charge = float(site_settings["delivery_charge"])
        except (TypeError, ValueError):
            raise ValueError("delivery_charge must be a number")
        if charge < 0:
            raise ValueError("delivery_charge cannot be negative")

    return await save_section(admin_client, user_id, SETTINGS_SECTION, site_settings)


async def get_section(admin_client: Client, section: str) -> Optional[Dict[str, Any]]:
    result = (
        admin_client.table("site_content")
        .select("*")
        .eq("section", section)
        .limit(1)
        .execute()
    )
    if not result.data:
        return None
    return cast(Dict[str, Any], result.data[0])


# =============================================================================
# Categories
# =============================================================================

async def create_category(admin_client: Client, user_id: str, category: Dict[str, Any]) -> Dict[str, Any]:
    data = sanitize_recursively(category)
    created = _first_row(admin_client.table("categories").insert(data).execute(), "create category")
    record_audit_log(admin_client, user_id, "create_category", "category", str(created["id"]), data)
    return created


async def update_category(
    admin_client: Client,
    user_id: str,
    category_id: str,
    updates: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    data = sanitize_recursively(updates)
    result = admin_client.table("categories").update(data).eq("id", category_id).execute()
    if not result.data:
        return None
    record_audit_log(admin_client, user_id, "update_category", "category", category_id, data)
    return cast(Dict[str, Any], result.data[0])


async def delete_category(admin_client: Client, user_id: str, category_id: str) -> bool:
    """
    Raises:
        ResourceInUseError: Products still belong to the category
    """
    linked = (
        admin_client.table("products")
        .select("id")
        .eq("category_id", category_id)
        .limit(1)
        .execute()
    )
    if linked.data:
        raise ResourceInUseError(
            "category_has_products",
            "Cannot delete category with linked products",
        )

    result = admin_client.table("categories").delete().eq("id", category_id).execute()
    if not result.data:
        return False
    record_audit_log(admin_client, user_id, "delete_category", "category", category_id)
    return True


# =============================================================================
# Roles and activity
# =============================================================================

async def list_user_roles(admin_client: Client) -> List[Dict[str, Any]]:
    result = (
        admin_client.table("user_roles")
        .select("*, profiles(full_name, email)")
        .order("created_at", desc=True)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


async def list_activity_log(admin_client: Client, limit: int = 100) -> List[Dict[str, Any]]:
    result = (
        admin_client.table("admin_activity_log")
        .select("*")
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return cast(List[Dict[str, Any]], result.data or [])


# =============================================================================
# Customers and auth events
# =============================================================================

async def list_customers(admin_client: Client, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    """
    Customer profiles, newest first, each with its number of orders.

    Returns:
        Profile rows with an added "order_count"
    """
    result = (
        admin_client.table("profiles")
        .select("*")
        .order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    profiles = cast(List[Dict[str, Any]], result.data or [])

    customers = []
    for profile in profiles:
        counted = (
            admin_client.table("orders")
            .select("*", count="exact", head=True)
            .eq("user_id", profile["id"])
            .execute()
        )
        customers.append({**profile, "order_count": counted.count or 0})
    return customers


async def list_auth_events(
    admin_client: Client,
    event_type: Optional[str] = None,
    email: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """
    Latest sign-in/sign-up events.

    Args:
        event_type: Exact event type filter (login_success, login_failed, ...)
        email: Case-insensitive substring match on the email
    """
    query = admin_client.table("auth_events").select("*")
    if event_type:
        query = query.eq("event_type", event_type)
    if email:
        query = query.ilike("email", f"%{email}%")
    result = query.order("created_at", desc=True).limit(limit).execute()
    return cast(List[Dict[str, Any]], result.data or [])
