"""
Pydantic models for checkout endpoints.

Address rules follow the storefront form: a 6-digit Indian pincode and
bounded free-text fields. Values are trimmed before length checks.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from storefront.schemas.cart import QuoteResponse

PaymentMethod = Literal["card", "upi", "netbanking", "cod"]


class ShippingAddress(BaseModel):
    house_no: str = Field(..., min_length=1, max_length=100, description="House / flat number")
    street: str = Field(..., min_length=1, max_length=200, description="Street and area")
    landmark: Optional[str] = Field(None, max_length=200, description="Nearby landmark")
    city: str = Field(..., min_length=1, max_length=100, description="City")
    state: str = Field(..., min_length=1, max_length=100, description="State")
    pincode: str = Field(
        ...,
        pattern=r"^\d{6}$",
        description="6-digit pincode",
        examples=["221001"]
    )

    model_config = {"str_strip_whitespace": True}


class AddressSaveResponse(BaseModel):
    status: str = Field(..., examples=["SAVED"])
    message: str


class CouponApplyRequest(BaseModel):
    code: str = Field(..., max_length=50, description="Coupon code (case-insensitive)")


class CouponApplyResponse(BaseModel):
    code: str = Field(..., description="Normalised (upper-case) coupon code")
    discount_percentage: float = Field(..., description="Percentage off the subtotal")
    discount_amount: float = Field(..., description="Discount in INR for the current cart")
    quote: QuoteResponse


class PlaceOrderRequest(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = Field(..., description="card, upi, netbanking or cod")
    coupon_code: Optional[str] = Field(None, max_length=50, description="Coupon to apply")


class OrderResponse(BaseModel):
    """An orders row as stored after reconciliation."""
    id: str = Field(..., description="Order UUID")
    user_id: str = Field(..., description="Owner UUID")
    total_amount: float = Field(..., description="Authoritative total in INR")
    status: str = Field(..., description="pending, processing, paid, failed, shipped, delivered or cancelled")
    shipping_address: Optional[Dict[str, Any]] = Field(None, description="Address snapshot")
    coupon_code: Optional[str] = Field(None, description="Applied coupon")
    discount_amount: Optional[float] = Field(None, description="Discount in INR")
    created_at: Optional[str] = Field(None, description="ISO-8601 timestamp")

    model_config = {"extra": "allow"}


class GatewayOrderResponse(BaseModel):
    """Everything the browser needs to open Razorpay Checkout."""
    order_id: str = Field(..., description="Razorpay order id", examples=["order_Nx1"])
    amount: int = Field(..., description="Amount in paise")
    currency: str = Field(..., examples=["INR"])
    receipt: str = Field(..., description="Receipt (the database order id)")
    db_order_id: str = Field(..., description="Database order UUID")
    key_id: str = Field(..., description="Public Razorpay key id")


class PlaceOrderResponse(BaseModel):
    order: OrderResponse
    requires_payment: bool = Field(..., description="False for cash on delivery")
    payment: Optional[GatewayOrderResponse] = Field(
        None,
        description="Razorpay order for online payment methods"
    )
