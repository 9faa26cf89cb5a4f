"""
Razorpay payment API endpoints.

Endpoints:
- POST /payments/orders - Create a Razorpay order for a stored order
- POST /payments/verify - Verify a Checkout payment and finalise the order
- POST /payments/webhook - Razorpay server-to-server events (no user auth)
"""

import json
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_supabase_client
from storefront.schemas.checkout import GatewayOrderResponse
from storefront.schemas.payments import (
    CreatePaymentOrderRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    WebhookAckResponse,
)
from storefront.services.payment_service import (
    PaymentError,
    create_gateway_order,
    handle_webhook_event,
    verify_payment,
    verify_webhook_signature,
)
from storefront.services.rate_limit import RateLimitExceeded, enforce_ip_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _payment_http_error(e: PaymentError) -> HTTPException:
    return HTTPException(
        status_code=e.status_code,
        detail={"error": e.code, "details": e.message}
    )


@router.post(
    "/orders",
    response_model=GatewayOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a Razorpay order",
    description="""
    Create a Razorpay order for one of the user's stored orders.

    The amount is read from the stored order total (converted to paise),
    never from the request. Limited to 5 requests per minute per user.
    """
)
async def post_payment_order(
    request: CreatePaymentOrderRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> GatewayOrderResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        gateway_order = await create_gateway_order(
            supabase_client,
            auth_user.user_id,
            request.order_id,
            currency=request.currency,
            notes=request.notes,
        )
    except PaymentError as e:
        raise _payment_http_error(e)
    except RateLimitExceeded:
        raise
    except Exception as e:
        logger.error(f"Failed to create payment order: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "payment_error", "details": "Failed to create payment order"}
        )

    return GatewayOrderResponse(**gateway_order)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    status_code=status.HTTP_200_OK,
    summary="Verify a payment",
    description="""
    Verify the signature returned by Razorpay Checkout.

    When order_details.order_id is given the order is marked paid (only by
    its owner, and only if the Razorpay order was created for it with the
    same amount), the cart is cleared and confirmation and receipt emails
    are sent. Limited to 10 requests per minute per user.
    """
)
async def post_verify_payment(
    request: VerifyPaymentRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> VerifyPaymentResponse:
    supabase_client = get_supabase_client(auth_user.access_token)
    details = request.order_details

    try:
        result = await verify_payment(
            supabase_client=supabase_client,
            user_id=auth_user.user_id,
            razorpay_order_id=request.razorpay_order_id,
            razorpay_payment_id=request.razorpay_payment_id,
            razorpay_signature=request.razorpay_signature,
            order_id=details.order_id if details else None,
            payment_method=(details.payment_method if details and details.payment_method else "card"),
            email=auth_user.email,
        )
    except PaymentError as e:
        raise _payment_http_error(e)
    except RateLimitExceeded:
        raise
    except Exception as e:
        logger.error(f"Payment verification failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "payment_error", "details": "Payment verification failed"}
        )

    return VerifyPaymentResponse(**result)


@router.post(
    "/webhook",
    response_model=WebhookAckResponse,
    status_code=status.HTTP_200_OK,
    summary="Razorpay webhook",
    description="""
    Receive Razorpay events. Authenticated by the x-razorpay-signature header
    (HMAC-SHA256 of the raw body with the webhook secret), not by a user token.

    Handled events: payment.captured, payment.failed, refund.created,
    refund.processed. Payment events are processed at most once per payment id.
    """,
    dependencies=[Depends(enforce_ip_rate_limit)],
)
async def post_webhook(
    request: Request,
    x_razorpay_signature: Annotated[Optional[str], Header()] = None,
) -> WebhookAckResponse:
    if not x_razorpay_signature:
        logger.warning("Webhook received without signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "missing_signature", "details": "Missing signature"}
        )

    body = await request.body()

    try:
        valid = verify_webhook_signature(body, x_razorpay_signature)
    except PaymentError as e:
        raise _payment_http_error(e)

    if not valid:
        logger.error("Invalid webhook signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_signature", "details": "Invalid signature"}
        )

    try:
        event_payload = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_payload", "details": "Body is not valid JSON"}
        )

    logger.info(f"Webhook event received: {event_payload.get('event')}")

    try:
        await handle_webhook_event(event_payload)
    except Exception as e:
        logger.error(f"Webhook processing error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "webhook_error", "details": "Webhook processing failed"}
        )

    return WebhookAckResponse(received=True)
