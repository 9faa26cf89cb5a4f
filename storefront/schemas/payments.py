"""
Pydantic models for Razorpay payment endpoints.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from storefront.schemas.checkout import PaymentMethod


class CreatePaymentOrderRequest(BaseModel):
    """
    Request for POST /payments/orders.

    The amount is never taken from the client: it is read from the stored order.
    """
    order_id: str = Field(..., min_length=1, description="Database order UUID")
    currency: str = Field("INR", min_length=3, max_length=3, description="ISO currency code")
    notes: Optional[Dict[str, str]] = Field(None, description="Extra notes for the gateway order")


class OrderDetails(BaseModel):
    order_id: Optional[str] = Field(None, description="Database order UUID to mark paid")
    payment_method: Optional[PaymentMethod] = Field(None, description="Method chosen at checkout")


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1, examples=["order_Nx1"])
    razorpay_payment_id: str = Field(..., min_length=1, examples=["pay_Nx1"])
    razorpay_signature: str = Field(..., min_length=1, description="Hex HMAC-SHA256 signature")
    order_details: Optional[OrderDetails] = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    verified: bool
    payment_id: str = Field(..., description="Razorpay payment id")
    order_id: str = Field(..., description="Razorpay order id")


class WebhookAckResponse(BaseModel):
    received: bool = True
