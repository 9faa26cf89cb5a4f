"""
Pydantic models for cart endpoints and price quotes.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from storefront.schemas.catalog import AddOnResponse


class QuoteResponse(BaseModel):
    """
    Tentative totals for the current cart.

    The authoritative total is computed by the database when the order is
    placed; the gateway is always charged that value.
    """
    subtotal: float = Field(..., description="Sum of line totals (add-ons included)")
    delivery_charge: float = Field(..., description="Flat delivery charge")
    discount: float = Field(..., description="Coupon discount")
    total: float = Field(..., description="subtotal + delivery - discount, never negative")
    coupon_code: Optional[str] = Field(None, description="Applied coupon code")


class CartItemResponse(BaseModel):
    id: str = Field(..., description="Cart item UUID")
    product_id: str = Field(..., description="Product UUID")
    quantity: int = Field(..., ge=1, description="Units of the product")
    selected_add_ons: List[str] = Field(default_factory=list, description="Selected add-on UUIDs")
    item_total: Optional[float] = Field(None, description="(price + add-ons) x quantity")
    products: Optional[Dict[str, Any]] = Field(None, description="Joined product row")


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    add_ons: List[AddOnResponse]
    quote: QuoteResponse


class CartItemCreateRequest(BaseModel):
    """Adding a product already in the cart increases its quantity by one."""
    product_id: str = Field(..., min_length=1, description="Product UUID")
    selected_add_ons: List[str] = Field(default_factory=list, description="Add-on UUIDs")


class CartItemUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=1, le=99, description="New quantity")


class CartItemDeleteResponse(BaseModel):
    status: str = Field(..., examples=["DELETED"])
    message: str
