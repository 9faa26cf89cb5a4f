"""
Service layer for the storefront backend.

Contains business logic that:
- Prices carts and orders (pricing, coupons)
- Reconciles orders with the database and the payment gateway (checkout, payments)
- Sends transactional email (notifications)
- Coordinates persistence under RLS (cart, wishlist, reviews, profile)
- Performs privileged back-office writes (admin, storage)

Services act as the glue between routes (HTTP layer) and Supabase.
"""

from .cart_service import (
    add_to_cart,
    clear_cart,
    get_add_ons,
    get_cart_items,
    remove_cart_item,
    update_cart_quantity,
)
from .checkout_service import (
    CheckoutError,
    PlacedOrder,
    get_delivery_charge,
    get_quote,
    place_order,
    save_shipping_address,
)
from .coupon_service import AppliedCoupon, CouponError, increment_coupon_usage, validate_coupon
from .payment_service import (
    PaymentError,
    create_gateway_order,
    handle_webhook_event,
    verify_payment,
    verify_payment_signature,
    verify_webhook_signature,
)
from .profile_service import get_order_history, get_profile, update_profile
from .rate_limit import RateLimitExceeded, enforce_user_rate_limit

__all__ = [
    "get_cart_items",
    "get_add_ons",
    "add_to_cart",
    "update_cart_quantity",
    "remove_cart_item",
    "clear_cart",
    "CheckoutError",
    "PlacedOrder",
    "get_delivery_charge",
    "get_quote",
    "place_order",
    "save_shipping_address",
    "AppliedCoupon",
    "CouponError",
    "validate_coupon",
    "increment_coupon_usage",
    "PaymentError",
    "create_gateway_order",
    "verify_payment",
    "verify_payment_signature",
    "verify_webhook_signature",
    "handle_webhook_event",
    "get_profile",
    "update_profile",
    "get_order_history",
    "RateLimitExceeded",
    "enforce_user_rate_limit",
]
