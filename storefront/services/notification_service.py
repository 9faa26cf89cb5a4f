"""
Transactional email via Resend.

Two messages are sent during checkout:
- Order confirmation (after a COD order is placed or an online payment is verified)
- Payment receipt (after an online payment is verified)

Email is best effort: a missing API key, a missing recipient or a provider
error is logged and reported as False, it never fails the order.
"""

import logging
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Mapping, Optional

import resend
from fastapi.concurrency import run_in_threadpool

from storefront.config import settings
from storefront.services.pricing import to_decimal

logger = logging.getLogger(__name__)


def _format_inr(amount: Any) -> str:
    return f"₹{to_decimal(amount):,.2f}"


def _format_address(address: Optional[Mapping[str, Any]]) -> str:
    if not address:
        return ""
    parts = [
        address.get("house_no") or address.get("houseNo"),
        address.get("street"),
        address.get("landmark"),
        address.get("city"),
        address.get("state"),
    ]
    line = ", ".join(escape(str(p)) for p in parts if p)
    pincode = address.get("pincode")
    if pincode:
        line = f"{line} - {escape(str(pincode))}"
    return line


def build_order_confirmation_html(
    name: Optional[str],
    order_id: str,
    total_amount: Any,
    items: List[Mapping[str, Any]],
    shipping_address: Optional[Mapping[str, Any]],
) -> str:
    rows = "".join(
        "<tr>"
        f"<td style=\"padding: 8px; border-bottom: 1px solid #eee;\">{escape(str(item.get('name') or ''))}</td>"
        f"<td style=\"padding: 8px; border-bottom: 1px solid #eee; text-align: center;\">{int(item.get('quantity') or 0)}</td>"
        f"<td style=\"padding: 8px; border-bottom: 1px solid #eee; text-align: right;\">{_format_inr(item.get('price'))}</td>"
        "</tr>"
        for item in items
    )
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #F4D9B5; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="color: #8B4513; margin: 0;">Order Confirmed!</h1>
  </div>
  <div style="padding: 30px; background: #fff;">
    <p>Dear {escape(name or 'Customer')},</p>
    <p>Thank you for shopping with {escape(settings.STORE_NAME)}. Your order <strong>#{escape(order_id[:8].upper())}</strong> has been received.</p>
    <table style="width: 100%; border-collapse: collapse;">
      <thead>
        <tr><th style="text-align: left;">Item</th><th>Qty</th><th style="text-align: right;">Price</th></tr>
      </thead>
      <tbody>{rows}</tbody>
    </table>
    <p style="text-align: right; font-size: 18px;"><strong>Total: {_format_inr(total_amount)}</strong></p>
    <h3>Shipping Address</h3>
    <p>{_format_address(shipping_address)}</p>
    <p>Estimated delivery: 5-7 business days.</p>
  </div>
</body>
</html>"""


def build_payment_receipt_html(
    name: Optional[str],
    order_id: str,
    payment_id: str,
    amount: Any,
    payment_method: str,
    paid_at: datetime,
) -> str:
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #F4D9B5; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="color: #8B4513; margin: 0;">Payment Receipt</h1>
  </div>
  <div style="padding: 30px; background: #fff;">
    <p>Dear {escape(name or 'Customer')},</p>
    <p>We have received your payment.</p>
    <table style="width: 100%;">
      <tr><td>Order ID</td><td style="text-align: right;">#{escape(order_id[:8].upper())}</td></tr>
      <tr><td>Payment ID</td><td style="text-align: right;">{escape(payment_id)}</td></tr>
      <tr><td>Payment Method</td><td style="text-align: right;">{escape(payment_method.upper())}</td></tr>
      <tr><td>Date</td><td style="text-align: right;">{paid_at.strftime('%d %b %Y, %H:%M')}</td></tr>
      <tr><td><strong>Amount Paid</strong></td><td style="text-align: right;"><strong>{_format_inr(amount)}</strong></td></tr>
    </table>
    <p>Thank you for shopping with {escape(settings.STORE_NAME)}.</p>
  </div>
</body>
</html>"""


async def _send(to: Optional[str], subject: str, html: str) -> bool:
    if not settings.RESEND_API_KEY:
        logger.warning(f"RESEND_API_KEY not configured; skipping email '{subject}'")
        return False
    if not to:
        logger.warning(f"No recipient address; skipping email '{subject}'")
        return False

    resend.api_key = settings.RESEND_API_KEY
    params: Dict[str, Any] = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": html,
    }

    try:
        # resend is a blocking HTTP client
        response = await run_in_threadpool(resend.Emails.send, params)
    except Exception as e:
        logger.error(f"Email '{subject}' failed: {e}", exc_info=True)
        return False

    if not isinstance(response, dict) or not response.get("id"):
        logger.error(f"Email '{subject}' rejected by provider: {response}")
        return False

    logger.info(f"Email '{subject}' sent (id={response['id']})")
    return True


async def send_order_confirmation(
    email: Optional[str],
    name: Optional[str],
    order_id: str,
    total_amount: Any,
    items: List[Mapping[str, Any]],
    shipping_address: Optional[Mapping[str, Any]] = None,
) -> bool:
    """
    Send the order confirmation email.

    Args:
        email: Recipient (the customer's profile email)
        name: Customer name for the greeting
        order_id: Database order UUID (first 8 chars shown to the customer)
        total_amount: Authoritative order total
        items: [{"name", "quantity", "price"}] where price is the line total
        shipping_address: Address dict stored on the order

    Returns:
        True if the provider accepted the message
    """
    html = build_order_confirmation_html(name, order_id, total_amount, items, shipping_address)
    return await _send(email, f"Order Confirmation - {order_id[:8]}", html)


async def send_payment_receipt(
    email: Optional[str],
    name: Optional[str],
    order_id: str,
    payment_id: str,
    amount: Any,
    payment_method: str,
    paid_at: datetime,
) -> bool:
    """Send the payment receipt email. Returns True if accepted by the provider."""
    html = build_payment_receipt_html(name, order_id, payment_id, amount, payment_method, paid_at)
    return await _send(email, f"Payment Receipt - {order_id[:8]}", html)
