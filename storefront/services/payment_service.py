"""
Razorpay payment service.

Flow for online payments:
1. Checkout persists the order and its authoritative total (see checkout_service)
2. create_gateway_order() registers a Razorpay order for that total (in paise)
3. The browser completes payment with Razorpay Checkout
4. verify_payment() checks the returned signature, marks the order paid and
   runs the post-payment side effects (cart cleared, emails sent)
5. Razorpay webhooks (handle_webhook_event) reconcile captured/failed
   payments independently of the browser

The amount charged is always read from the stored order, never from the
client request.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, cast

import razorpay
from razorpay.errors import SignatureVerificationError
from supabase import Client

from storefront.config import settings
from storefront.db.client import get_service_role_client
from storefront.services import notification_service
from storefront.services.cart_service import clear_cart
from storefront.services.pricing import to_decimal, to_minor_units
from storefront.services.profile_service import get_profile
from storefront.services.rate_limit import enforce_user_rate_limit
from storefront.utils.constants import (
    ORDER_STATUS_FAILED,
    ORDER_STATUS_PAID,
    RATE_LIMITS,
)

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


class PaymentError(Exception):
    """
    Raised when a payment operation cannot proceed.

    Attributes:
        code: machine-readable error code returned to the client
        status_code: HTTP status the route should answer with
    """

    def __init__(self, code: str, message: str, status_code: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def get_razorpay_client() -> razorpay.Client:
    """
    Build a Razorpay API client from the configured key pair.

    Raises:
        PaymentError: 503 if credentials are not configured
    """
    if not settings.payments_configured():
        logger.error("Razorpay credentials not configured")
        raise PaymentError(
            "gateway_not_configured",
            "Payment gateway is not configured",
            status_code=503,
        )
    return razorpay.Client(auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET))


async def create_gateway_order(
    supabase_client: Client,
    user_id: str,
    order_id: str,
    currency: Optional[str] = None,
    notes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create a Razorpay order for one of the user's stored orders.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID
        order_id: Database order UUID
        currency: ISO currency (defaults to DEFAULT_CURRENCY)
        notes: Extra notes attached to the gateway order

    Returns:
        {order_id, amount, currency, receipt, db_order_id, key_id}
        where order_id is the gateway order id and amount is in paise

    Raises:
        RateLimitExceeded: More than 5 calls per minute for this user
        PaymentError: order_not_found (404), invalid_amount (400),
                      gateway_not_configured (503), gateway_error (502)
    """
    endpoint, max_requests = RATE_LIMITS['CREATE_GATEWAY_ORDER']
    await enforce_user_rate_limit(supabase_client, user_id, endpoint, max_requests)

    result = (
        supabase_client.table("orders")
        .select("*")
        .eq("id", order_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    rows = cast(List[Dict[str, Any]], result.data or [])
    if not rows:
        logger.warning(f"Order {order_id} not found for user {user_id}")
        raise PaymentError("order_not_found", "Order not found", status_code=404)

    order = rows[0]
    amount = to_minor_units(order.get("total_amount"))
    if amount <= 0:
        raise PaymentError("invalid_amount", "Order amount must be greater than zero")

    currency = currency or settings.DEFAULT_CURRENCY
    client = get_razorpay_client()

    order_notes = dict(notes or {})
    order_notes.update({"order_id": order_id, "user_id": user_id})

    try:
        gateway_order = client.order.create(
            data={
                "amount": amount,
                "currency": currency,
                "receipt": order_id,
                "notes": order_notes,
            },
            headers={"X-Razorpay-Idempotency-Key": f"order_{user_id}_{order_id}"},
        )
    except Exception as e:
        logger.error(f"Razorpay order creation failed for order {order_id}: {e}", exc_info=True)
        raise PaymentError(
            "gateway_error",
            "Failed to create payment order",
            status_code=502,
        )

    logger.info(
        f"Razorpay order {gateway_order.get('id')} created for order {order_id}: "
        f"amount={amount} {currency}"
    )

    return {
        "order_id": gateway_order["id"],
        "amount": gateway_order.get("amount", amount),
        "currency": gateway_order.get("currency", currency),
        "receipt": gateway_order.get("receipt", order_id),
        "db_order_id": order_id,
        "key_id": settings.RAZORPAY_KEY_ID,
    }


def verify_payment_signature(
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
) -> bool:
    """
    Check the Checkout signature: hex HMAC-SHA256 of "<order_id>|<payment_id>"
    keyed with the API secret, compared in constant time by the SDK.
    """
    client = get_razorpay_client()
    try:
        client.utility.verify_payment_signature({
            "razorpay_order_id": razorpay_order_id,
            "razorpay_payment_id": razorpay_payment_id,
            "razorpay_signature": razorpay_signature,
        })
    except SignatureVerificationError:
        return False
    return True


def verify_webhook_signature(body: bytes, signature: str) -> bool:
    """
    Check a webhook signature: hex HMAC-SHA256 of the raw body keyed with
    the webhook secret.

    Raises:
        PaymentError: 500 if the webhook secret is not configured
    """
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.error("RAZORPAY_WEBHOOK_SECRET not configured")
        raise PaymentError(
            "webhook_not_configured",
            "Webhook secret not configured",
            status_code=500,
        )

    # Webhook checks only need the utility helpers, no API credentials
    client = razorpay.Client(auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET))
    try:
        client.utility.verify_webhook_signature(
            body.decode("utf-8"), signature, settings.RAZORPAY_WEBHOOK_SECRET
        )
    except (SignatureVerificationError, UnicodeDecodeError):
        return False
    return True


def fetch_gateway_order(razorpay_order_id: str) -> Dict[str, Any]:
    """
    Read a Razorpay order back from the gateway.

    Raises:
        PaymentError: gateway_not_configured (503), gateway_error (502)
    """
    client = get_razorpay_client()
    try:
        return cast(Dict[str, Any], client.order.fetch(razorpay_order_id))
    except Exception as e:
        logger.error(f"Razorpay order fetch failed for {razorpay_order_id}: {e}")
        raise PaymentError(
            "gateway_error",
            "Failed to fetch payment order",
            status_code=502,
        )


def gateway_order_matches(gateway_order: Mapping[str, Any], order: Mapping[str, Any]) -> bool:
    """
    True if the gateway order was created for this database order: its
    receipt or notes.order_id names the order and its amount equals the
    stored total in paise.
    """
    order_id = str(order.get("id"))
    notes = gateway_order.get("notes")
    # Razorpay returns [] for empty notes
    noted_order_id = notes.get("order_id") if isinstance(notes, dict) else None

    if gateway_order.get("receipt") != order_id and noted_order_id != order_id:
        return False
    return gateway_order.get("amount") == to_minor_units(order.get("total_amount"))


def _email_items(order_items: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "name": item.get("product_name") or "Item",
            "quantity": item.get("quantity") or 0,
            "price": item.get("item_total") or item.get("price"),
        }
        for item in order_items
    ]


async def finalize_paid_order(
    supabase_client: Client,
    user_id: str,
    order: Mapping[str, Any],
    payment_id: str,
    payment_method: str,
    fallback_email: Optional[str] = None,
) -> None:
    """
    Side effects after a verified online payment: clear the cart and send
    the confirmation and receipt emails. Every step is best effort.
    """
    try:
        await clear_cart(supabase_client, user_id)
    except Exception as e:
        logger.error(f"Failed to clear cart for user {user_id} after payment: {e}")

    profile: Optional[Dict[str, Any]] = None
    try:
        profile = await get_profile(supabase_client, user_id)
    except Exception as e:
        logger.warning(f"Profile lookup failed for user {user_id}: {e}")

    email = (profile or {}).get("email") or fallback_email
    name = (profile or {}).get("full_name")
    order_id = str(order["id"])
    total = to_decimal(order.get("total_amount"))

    await notification_service.send_order_confirmation(
        email=email,
        name=name,
        order_id=order_id,
        total_amount=total,
        items=_email_items(order.get("order_items") or []),
        shipping_address=order.get("shipping_address"),
    )
    await notification_service.send_payment_receipt(
        email=email,
        name=name,
        order_id=order_id,
        payment_id=payment_id,
        amount=total,
        payment_method=payment_method,
        paid_at=datetime.now(timezone.utc),
    )


async def verify_payment(
    supabase_client: Client,
    user_id: str,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
    order_id: Optional[str] = None,
    payment_method: str = "card",
    email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Verify a Checkout payment and mark the order paid.

    Args:
        supabase_client: Authenticated Supabase client
        user_id: The authenticated user's ID
        razorpay_order_id: Gateway order id ("order_...")
        razorpay_payment_id: Gateway payment id ("pay_...")
        razorpay_signature: Signature returned by Checkout
        order_id: Database order UUID to mark paid (optional)
        payment_method: Method chosen at checkout, shown on the receipt
        email: Fallback recipient when the profile has no email

    Returns:
        {success, verified, payment_id, order_id}

    Raises:
        RateLimitExceeded: More than 10 calls per minute for this user
        PaymentError: invalid_order_id / invalid_payment_id /
                      invalid_signature / order_mismatch (400),
                      order_not_found (404), forbidden (403),
                      gateway_error (502)
    """
    endpoint, max_requests = RATE_LIMITS['VERIFY_PAYMENT']
    await enforce_user_rate_limit(supabase_client, user_id, endpoint, max_requests)

    if not razorpay_order_id.startswith("order_"):
        raise PaymentError("invalid_order_id", "Invalid Razorpay order ID format")
    if not razorpay_payment_id.startswith("pay_"):
        raise PaymentError("invalid_payment_id", "Invalid Razorpay payment ID format")

    if not verify_payment_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature):
        logger.warning(
            f"Invalid payment signature for user {user_id}: "
            f"order={razorpay_order_id}, payment={razorpay_payment_id}"
        )
        raise PaymentError("invalid_signature", "Invalid payment signature")

    logger.info(f"Payment {razorpay_payment_id} verified for user {user_id}")

    if order_id:
        admin_client = get_service_role_client()
        result = (
            admin_client.table("orders")
            .select("*, order_items(*)")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        rows = cast(List[Dict[str, Any]], result.data or [])
        if not rows:
            raise PaymentError("order_not_found", "Order not found", status_code=404)

        order = rows[0]
        if str(order.get("user_id")) != user_id:
            logger.warning(f"User {user_id} attempted to verify payment for order {order_id}")
            raise PaymentError("forbidden", "Unauthorized", status_code=403)

        gateway_order = fetch_gateway_order(razorpay_order_id)
        if not gateway_order_matches(gateway_order, order):
            logger.warning(
                f"Razorpay order {razorpay_order_id} does not match order {order_id} "
                f"for user {user_id}"
            )
            raise PaymentError(
                "order_mismatch",
                "Payment does not belong to this order",
                status_code=400,
            )

        try:
            admin_client.table("orders").update(
                {"status": ORDER_STATUS_PAID}
            ).eq("id", order_id).execute()
        except Exception as e:
            logger.error(f"Error updating order {order_id} to paid: {e}")

        await finalize_paid_order(
            supabase_client,
            user_id,
            order,
            payment_id=razorpay_payment_id,
            payment_method=payment_method,
            fallback_email=email,
        )

    return {
        "success": True,
        "verified": True,
        "payment_id": razorpay_payment_id,
        "order_id": razorpay_order_id,
    }


def _extract_order_id(entity: Mapping[str, Any]) -> Optional[str]:
    order_id = (entity.get("notes") or {}).get("order_id")
    if not order_id or not UUID_PATTERN.match(str(order_id)):
        return None
    return str(order_id)


def _apply_payment_event(
    admin_client: Client,
    entity: Mapping[str, Any],
    event: str,
    new_status: str,
) -> None:
    payment_id = entity.get("id")
    if not payment_id:
        logger.error(f"Webhook {event} missing payment id")
        return

    # Dedupe bookkeeping failures fall through to the status update
    try:
        processed = admin_client.rpc(
            "check_webhook_processed", {"p_payment_id": payment_id}
        ).execute()
        if processed.data:
            logger.info(f"Webhook {event} for payment {payment_id} already processed")
            return
    except Exception as e:
        logger.error(f"check_webhook_processed failed for payment {payment_id}: {e}")

    try:
        admin_client.rpc(
            "mark_webhook_processed",
            {"p_payment_id": payment_id, "p_event_type": event},
        ).execute()
    except Exception as e:
        logger.error(f"mark_webhook_processed failed for payment {payment_id}: {e}")

    order_id = _extract_order_id(entity)
    if not order_id:
        logger.error(f"Webhook {event} for payment {payment_id} has no valid notes.order_id")
        return

    admin_client.table("orders").update({"status": new_status}).eq("id", order_id).execute()
    logger.info(f"Order {order_id} marked {new_status} from webhook {event}")


async def handle_webhook_event(event_payload: Mapping[str, Any]) -> None:
    """
    Apply a verified Razorpay webhook event.

    payment.captured -> order paid, payment.failed -> order failed. Both are
    deduplicated by payment id via the check/mark_webhook_processed RPCs.
    Refund events are recorded in the log only.
    """
    event = str(event_payload.get("event") or "")
    payload = event_payload.get("payload") or {}

    if event in ("payment.captured", "payment.failed"):
        entity = (payload.get("payment") or {}).get("entity") or {}
        new_status = ORDER_STATUS_PAID if event == "payment.captured" else ORDER_STATUS_FAILED
        _apply_payment_event(get_service_role_client(), entity, event, new_status)
    elif event in ("refund.created", "refund.processed"):
        refund = (payload.get("refund") or {}).get("entity") or {}
        logger.info(
            f"AUDIT: refund event {event}: refund={refund.get('id')}, "
            f"payment={refund.get('payment_id')}, amount={refund.get('amount')}"
        )
    else:
        logger.info(f"Unhandled webhook event: {event}")
