"""
Checkout service: quote and order placement.

place_order() is the reconciliation pipeline:
1. Load the cart; an empty cart cannot be ordered
2. Price it (add-ons, delivery charge) and re-validate the coupon server-side
3. Insert the order with the tentative total
4. Insert order_items snapshots (name, image, sku... frozen at order time)
5. Call the recalculate_order_total RPC, which re-derives the total from
   stored product prices
6. Re-fetch the order so the authoritative total is used from here on
7. Record coupon usage
8. COD: clear the cart and email the confirmation
9. Online: create the Razorpay order for the authoritative total
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple, cast

from supabase import Client

from storefront.services import notification_service
from storefront.services.cart_service import clear_cart, get_add_ons, get_cart_items
from storefront.services.coupon_service import (
    AppliedCoupon,
    increment_coupon_usage,
    validate_coupon,
)
from storefront.services.payment_service import create_gateway_order
from storefront.services.pricing import (
    OrderQuote,
    build_quote,
    calculate_subtotal,
    cart_item_total,
    index_add_ons,
    to_decimal,
)
from storefront.utils.constants import (
    CASH_ON_DELIVERY,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PROCESSING,
    PAYMENT_METHODS,
    SETTINGS_SECTION,
)

logger = logging.getLogger(__name__)


class CheckoutError(Exception):
    """Raised when an order cannot be placed (e.g. code='cart_empty')."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class PlacedOrder:
    order: Dict[str, Any]
    requires_payment: bool
    gateway_order: Optional[Dict[str, Any]] = None
    items: List[Dict[str, Any]] = field(default_factory=list)


async def get_delivery_charge(supabase_client: Client) -> Decimal:
    """
    Flat delivery charge from site_content (section='settings').

    Missing, invalid or unreadable settings mean free delivery.
    """
    try:
        result = (
            supabase_client.table("site_content")
            .select("content")
            .eq("section", SETTINGS_SECTION)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to load delivery charge: {e}")
        return to_decimal(0)

    rows = cast(List[Dict[str, Any]], result.data or [])
    if not rows:
        return to_decimal(0)

    content = rows[0].get("content") or {}
    try:
        charge = to_decimal(content.get("delivery_charge"))
    except (ArithmeticError, ValueError, TypeError):
        logger.warning(f"Invalid delivery_charge in settings: {content.get('delivery_charge')!r}")
        return to_decimal(0)

    return max(charge, to_decimal(0))


async def save_shipping_address(
    supabase_client: Client,
    user_id: str,
    address: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Remember the customer's city and state on their profile.

    Returns:
        The updated profile row

    Raises:
        Exception: If the profile update returns no row
    """
    result = (
        supabase_client.table("profiles")
        .update({"city": address["city"], "state": address["state"]})
        .eq("id", user_id)
        .execute()
    )

    if not result.data:
        raise Exception("Failed to save address: no data returned")

    logger.info(f"Shipping address saved for user {user_id}")
    return cast(Dict[str, Any], result.data[0])


async def get_quote(
    supabase_client: Client,
    user_id: str,
    coupon_code: Optional[str] = None,
) -> OrderQuote:
    """
    Tentative totals for the user's current cart.

    Raises:
        CouponError: If coupon_code is given but does not apply
    """
    cart_items = await get_cart_items(supabase_client, user_id)
    add_ons = await get_add_ons(supabase_client)
    delivery_charge = await get_delivery_charge(supabase_client)

    coupon: Optional[AppliedCoupon] = None
    if coupon_code:
        subtotal = calculate_subtotal(cart_items, index_add_ons(add_ons))
        coupon = await validate_coupon(supabase_client, coupon_code, subtotal)

    return build_quote(
        cart_items,
        add_ons,
        delivery_charge,
        discount_percentage=coupon.discount_percentage if coupon else None,
        coupon_code=coupon.code if coupon else None,
    )


async def apply_coupon(
    supabase_client: Client,
    user_id: str,
    coupon_code: str,
) -> Tuple[AppliedCoupon, OrderQuote]:
    """
    Validate a coupon against the current cart and quote it.

    Raises:
        CouponError: If the coupon does not apply (including a blank code)
    """
    cart_items = await get_cart_items(supabase_client, user_id)
    add_ons = await get_add_ons(supabase_client)
    delivery_charge = await get_delivery_charge(supabase_client)

    subtotal = calculate_subtotal(cart_items, index_add_ons(add_ons))
    coupon = await validate_coupon(supabase_client, coupon_code, subtotal)

    quote = build_quote(
        cart_items,
        add_ons,
        delivery_charge,
        discount_percentage=coupon.discount_percentage,
        coupon_code=coupon.code,
    )
    return coupon, quote


def _first_image(product: Mapping[str, Any]) -> Optional[str]:
    images = product.get("images") or []
    if isinstance(images, list) and images:
        return str(images[0])
    return None


def build_order_item_rows(
    order_id: str,
    cart_items: List[Mapping[str, Any]],
    add_on_prices: Mapping[str, Any],
) -> List[Dict[str, Any]]:
    """Snapshot each cart line into an order_items row."""
    rows: List[Dict[str, Any]] = []
    for item in cart_items:
        product = item.get("products") or {}
        line_total = str(cart_item_total(item, add_on_prices))
        rows.append({
            "order_id": order_id,
            "product_id": item["product_id"],
            "quantity": item["quantity"],
            "price": line_total,
            "item_total": line_total,
            "selected_add_ons": item.get("selected_add_ons") or [],
            "product_name": product.get("name"),
            "product_image": _first_image(product),
            "product_description": product.get("description"),
            "product_sku": product.get("sku"),
            "product_color": product.get("color"),
            "product_fabric": product.get("fabric"),
        })
    return rows


async def place_order(
    supabase_client: Client,
    user_id: str,
    address: Mapping[str, Any],
    payment_method: str,
    coupon_code: Optional[str] = None,
    profile: Optional[Mapping[str, Any]] = None,
    email: Optional[str] = None,
) -> PlacedOrder:
    """
    Persist an order from the user's cart.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID
        address: Validated shipping address dict
        payment_method: card, upi, netbanking or cod
        coupon_code: Coupon to apply (re-validated here)
        profile: Customer profile (name/email for the confirmation email)
        email: Fallback recipient when the profile has no email

    Returns:
        PlacedOrder with the authoritative order row; for online payments
        it also carries the Razorpay order to open Checkout with

    Raises:
        ValueError: Unknown payment method
        CheckoutError: cart_empty
        CouponError: The coupon does not apply to this cart
        PaymentError / RateLimitExceeded: Gateway order creation failed
        Exception: If the order or its items cannot be inserted
    """
    if payment_method not in PAYMENT_METHODS:
        raise ValueError(f"Invalid payment method: {payment_method}")

    cart_items = await get_cart_items(supabase_client, user_id)
    if not cart_items:
        raise CheckoutError("cart_empty", "Your cart is empty")

    add_ons = await get_add_ons(supabase_client)
    add_on_prices = index_add_ons(add_ons)
    delivery_charge = await get_delivery_charge(supabase_client)

    coupon: Optional[AppliedCoupon] = None
    if coupon_code:
        subtotal = calculate_subtotal(cart_items, add_on_prices)
        coupon = await validate_coupon(supabase_client, coupon_code, subtotal)

    quote = build_quote(
        cart_items,
        add_ons,
        delivery_charge,
        discount_percentage=coupon.discount_percentage if coupon else None,
        coupon_code=coupon.code if coupon else None,
    )

    is_cod = payment_method == CASH_ON_DELIVERY
    order_data = {
        "user_id": user_id,
        "total_amount": str(quote.total),
        "status": ORDER_STATUS_PENDING if is_cod else ORDER_STATUS_PROCESSING,
        "shipping_address": dict(address),
        "coupon_code": quote.coupon_code,
        "discount_amount": str(quote.discount),
    }

    logger.info(
        f"Placing order for user {user_id}: items={len(cart_items)}, "
        f"total={quote.total}, method={payment_method}, coupon={quote.coupon_code}"
    )

    order_result = supabase_client.table("orders").insert(order_data).execute()
    if not order_result.data:
        raise Exception("Failed to create order: no data returned")

    order = cast(Dict[str, Any], order_result.data[0])
    order_id = str(order["id"])

    item_rows = build_order_item_rows(order_id, cart_items, add_on_prices)
    items_result = supabase_client.table("order_items").insert(item_rows).execute()
    if not items_result.data:
        raise Exception("Failed to create order items: no data returned")

    try:
        supabase_client.rpc("recalculate_order_total", {"order_id": order_id}).execute()
    except Exception as e:
        logger.error(f"recalculate_order_total failed for order {order_id}: {e}")

    refetched = (
        supabase_client.table("orders")
        .select("*")
        .eq("id", order_id)
        .limit(1)
        .execute()
    )
    if refetched.data:
        order = cast(Dict[str, Any], refetched.data[0])
    else:
        logger.warning(f"Order {order_id} could not be re-fetched; using inserted row")

    if to_decimal(order.get("total_amount")) != quote.total:
        logger.info(
            f"Order {order_id} total reconciled: quoted={quote.total}, "
            f"stored={order.get('total_amount')}"
        )

    if coupon:
        try:
            await increment_coupon_usage(supabase_client, coupon)
        except Exception as e:
            logger.error(f"Failed to increment usage of coupon {coupon.code}: {e}")

    email_items = [
        {
            "name": row["product_name"] or "Item",
            "quantity": row["quantity"],
            "price": row["item_total"],
        }
        for row in item_rows
    ]

    if is_cod:
        try:
            await clear_cart(supabase_client, user_id)
        except Exception as e:
            logger.error(f"Failed to clear cart for user {user_id}: {e}")

        await notification_service.send_order_confirmation(
            email=(profile or {}).get("email") or email,
            name=(profile or {}).get("full_name"),
            order_id=order_id,
            total_amount=order.get("total_amount"),
            items=email_items,
            shipping_address=order.get("shipping_address") or dict(address),
        )

        logger.info(f"COD order {order_id} placed for user {user_id}")
        return PlacedOrder(order=order, requires_payment=False, items=email_items)

    gateway_order = await create_gateway_order(
        supabase_client,
        user_id,
        order_id,
        notes={"payment_method": payment_method},
    )

    return PlacedOrder(
        order=order,
        requires_payment=True,
        gateway_order=gateway_order,
        items=email_items,
    )
