"""
Checkout API endpoints.

Endpoints:
- POST /checkout/address - Remember city/state on the profile
- GET /checkout/quote - Tentative totals for the cart (optional coupon)
- POST /checkout/coupon - Preview a coupon against the cart
- POST /checkout/orders - Place the order (reconciled with the database)
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_supabase_client
from storefront.routes.cart import quote_response
from storefront.schemas.cart import QuoteResponse
from storefront.schemas.checkout import (
    AddressSaveResponse,
    CouponApplyRequest,
    CouponApplyResponse,
    GatewayOrderResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ShippingAddress,
)
from storefront.services.checkout_service import (
    CheckoutError,
    apply_coupon,
    get_quote,
    place_order,
    save_shipping_address,
)
from storefront.services.coupon_service import CouponError
from storefront.services.payment_service import PaymentError
from storefront.services.profile_service import get_profile
from storefront.services.rate_limit import RateLimitExceeded

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


def _coupon_http_error(e: CouponError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": e.code, "details": e.message}
    )


@router.post(
    "/address",
    response_model=AddressSaveResponse,
    status_code=status.HTTP_200_OK,
    summary="Save the shipping address",
    description="""
    Validate the shipping address and remember city and state on the profile.

    Validation:
    - house_no 1-100 chars, street 1-200 chars, landmark up to 200 chars
    - city and state 1-100 chars
    - pincode exactly 6 digits
    """
)
async def post_address(
    address: ShippingAddress,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AddressSaveResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        await save_shipping_address(supabase_client, auth_user.user_id, address.model_dump())
    except Exception as e:
        logger.error(f"Failed to save address: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "update_error", "details": "Failed to save address"}
        )

    return AddressSaveResponse(status="SAVED", message="Address saved")


@router.get(
    "/quote",
    response_model=QuoteResponse,
    summary="Quote the cart",
)
async def get_checkout_quote(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)],
    coupon_code: Optional[str] = None,
) -> QuoteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        quote = await get_quote(supabase_client, auth_user.user_id, coupon_code)
    except CouponError as e:
        raise _coupon_http_error(e)
    except Exception as e:
        logger.error(f"Failed to quote cart: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to compute quote"}
        )

    return quote_response(quote)


@router.post(
    "/coupon",
    response_model=CouponApplyResponse,
    summary="Preview a coupon",
    description="""
    Check a coupon against the current cart and return the discounted quote.

    Errors (400): empty_code, invalid_coupon, minimum_not_met, usage_limit_reached.
    The coupon is validated again when the order is placed.
    """
)
async def post_coupon(
    request: CouponApplyRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CouponApplyResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        coupon, quote = await apply_coupon(supabase_client, auth_user.user_id, request.code)
    except CouponError as e:
        raise _coupon_http_error(e)
    except Exception as e:
        logger.error(f"Failed to apply coupon: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to apply coupon"}
        )

    return CouponApplyResponse(
        code=coupon.code,
        discount_percentage=float(coupon.discount_percentage),
        discount_amount=float(quote.discount),
        quote=quote_response(quote),
    )


@router.post(
    "/orders",
    response_model=PlaceOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="""
    Create an order from the cart.

    This endpoint:
    1. Re-prices the cart and re-validates the coupon server-side
    2. Stores the order and item snapshots
    3. Lets the database recalculate the authoritative total
    4. Cash on delivery: clears the cart and emails the confirmation
    5. Online payment: returns the Razorpay order to open Checkout with

    Errors:
    - 400 cart_empty or a coupon error
    - 429 when gateway order creation is rate limited
    - 502/503 when the payment gateway is unavailable
    """
)
async def post_order(
    request: PlaceOrderRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> PlaceOrderResponse:
    logger.info(f"Placing order for user {auth_user.user_id} via {request.payment_method}")

    supabase_client = get_supabase_client(auth_user.access_token)

    profile = None
    try:
        profile = await get_profile(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.warning(f"Profile lookup failed before checkout: {e}")

    try:
        placed = await place_order(
            supabase_client=supabase_client,
            user_id=auth_user.user_id,
            address=request.shipping_address.model_dump(),
            payment_method=request.payment_method,
            coupon_code=request.coupon_code,
            profile=profile,
            email=auth_user.email,
        )

    except CheckoutError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": e.code, "details": e.message}
        )
    except CouponError as e:
        raise _coupon_http_error(e)
    except PaymentError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": e.code, "details": e.message}
        )
    except RateLimitExceeded:
        raise
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to place order: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "order_error", "details": "Failed to place order"}
        )

    return PlaceOrderResponse(
        order=OrderResponse(**placed.order),
        requires_payment=placed.requires_payment,
        payment=GatewayOrderResponse(**placed.gateway_order) if placed.gateway_order else None,
    )
