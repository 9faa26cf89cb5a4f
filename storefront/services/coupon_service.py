"""
Coupon validation and usage tracking.

A coupon applies when ALL of the following hold:
1. Its code matches (codes are stored upper-case)
2. status = 'active'
3. expiry_date is in the future
4. The cart subtotal reaches minimum_purchase_amount
5. current_usage_count < max_usage_limit

The discount is a percentage of the subtotal (delivery charge excluded).
Validation runs both when the customer previews a coupon and again when the
order is placed, so a coupon cannot be applied to a cart it no longer fits.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, cast

from supabase import Client

from storefront.services.pricing import calculate_coupon_discount, to_decimal

logger = logging.getLogger(__name__)


class CouponError(Exception):
    """
    Raised when a coupon cannot be applied.

    Attributes:
        code: machine-readable reason (empty_code, invalid_coupon,
              minimum_not_met, usage_limit_reached)
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class AppliedCoupon:
    id: str
    code: str
    discount_percentage: Decimal
    discount_amount: Decimal
    current_usage_count: int


async def validate_coupon(
    supabase_client: Client,
    code: str,
    subtotal: Decimal,
    now: Optional[datetime] = None,
) -> AppliedCoupon:
    """
    Look up a coupon and check it against the cart subtotal.

    Args:
        supabase_client: Authenticated Supabase client
        code: Coupon code as typed by the customer (case-insensitive)
        subtotal: Cart subtotal before delivery and discount
        now: Reference time for expiry (defaults to current UTC time)

    Returns:
        AppliedCoupon with the computed discount amount

    Raises:
        CouponError: If the coupon is unknown, inactive, expired, below the
                     minimum purchase, or out of uses
    """
    normalized = (code or "").strip().upper()
    if not normalized:
        raise CouponError("empty_code", "Enter coupon code")

    if now is None:
        now = datetime.now(timezone.utc)

    result = (
        supabase_client.table("coupons")
        .select("*")
        .eq("code", normalized)
        .eq("status", "active")
        .gt("expiry_date", now.isoformat())
        .limit(1)
        .execute()
    )

    rows = cast(List[Dict[str, Any]], result.data or [])
    if not rows:
        logger.info(f"Coupon {normalized} not found, inactive or expired")
        raise CouponError("invalid_coupon", "This coupon is not valid or has expired")

    coupon = rows[0]

    minimum = to_decimal(coupon.get("minimum_purchase_amount"))
    if to_decimal(subtotal) < minimum:
        raise CouponError(
            "minimum_not_met",
            f"Minimum purchase of ₹{minimum:,.2f} required",
        )

    usage_count = int(coupon.get("current_usage_count") or 0)
    if usage_count >= int(coupon.get("max_usage_limit") or 0):
        raise CouponError("usage_limit_reached", "This coupon has reached its usage limit")

    percentage = Decimal(str(coupon.get("discount_percentage") or 0))
    discount_amount = calculate_coupon_discount(subtotal, percentage)

    logger.info(f"Coupon {normalized} applied: {percentage}% off")

    return AppliedCoupon(
        id=str(coupon["id"]),
        code=normalized,
        discount_percentage=percentage,
        discount_amount=discount_amount,
        current_usage_count=usage_count,
    )


async def increment_coupon_usage(
    supabase_client: Client,
    coupon: AppliedCoupon,
) -> None:
    """
    Record one more use of a coupon after an order was placed with it.

    Raises:
        Exception: If the update fails (callers treat this as best effort)
    """
    supabase_client.table("coupons").update(
        {"current_usage_count": coupon.current_usage_count + 1}
    ).eq("id", coupon.id).execute()

    logger.info(f"Coupon {coupon.code} usage incremented to {coupon.current_usage_count + 1}")
