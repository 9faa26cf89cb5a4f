"""
Pydantic models for the admin back-office.

Every admin endpoint requires the 'admin' role; mutating endpoints also
require the double-submit CSRF token.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AdminOrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
CouponStatus = Literal["active", "inactive"]


class AdminDeleteResponse(BaseModel):
    status: str = Field(..., examples=["DELETED"])
    message: str


# --- Products ---

class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0, description="Unit price in INR")
    description: Optional[str] = Field(None, description="Rich-text HTML, sanitized on save")
    category_id: Optional[str] = None
    images: List[str] = Field(default_factory=list, description="Image URLs, first is the cover")
    color: Optional[str] = Field(None, max_length=50)
    fabric: Optional[str] = Field(None, max_length=50)
    sku: Optional[str] = Field(None, max_length=50)
    available: bool = True
    is_best_seller: bool = False


class ProductUpdateRequest(BaseModel):
    """Only provided fields are updated."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    category_id: Optional[str] = None
    images: Optional[List[str]] = None
    color: Optional[str] = Field(None, max_length=50)
    fabric: Optional[str] = Field(None, max_length=50)
    sku: Optional[str] = Field(None, max_length=50)
    available: Optional[bool] = None
    is_best_seller: Optional[bool] = None


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1, description="Product UUIDs")


class BulkDeleteResponse(BaseModel):
    deleted: List[str] = Field(..., description="Deleted product UUIDs")
    blocked: List[str] = Field(..., description="UUIDs kept because orders reference them")


# --- Orders ---

class OrderStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="pending, processing, shipped, delivered or cancelled")


class AdminOrderListResponse(BaseModel):
    orders: List[Dict[str, Any]]
    count: int


# --- Coupons ---

class CouponCreateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Stored upper-case")
    discount_percentage: float = Field(..., gt=0, le=100)
    minimum_purchase_amount: float = Field(0, ge=0)
    max_usage_limit: int = Field(..., ge=1)
    expiry_date: str = Field(..., description="ISO-8601 timestamp")
    status: CouponStatus = "active"


class CouponUpdateRequest(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    discount_percentage: Optional[float] = Field(None, gt=0, le=100)
    minimum_purchase_amount: Optional[float] = Field(None, ge=0)
    max_usage_limit: Optional[int] = Field(None, ge=1)
    expiry_date: Optional[str] = None
    status: Optional[CouponStatus] = None


class CouponStatusRequest(BaseModel):
    status: CouponStatus


# --- Reviews ---

class AdminReviewCreateRequest(BaseModel):
    product_id: str
    user_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=500)
    verified_purchase: bool = False


class AdminReviewUpdateRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=500)
    verified_purchase: Optional[bool] = None


# --- Site content ---

class BannersRequest(BaseModel):
    slides: List[Dict[str, Any]] = Field(..., description="Homepage hero slides")


class SectionRequest(BaseModel):
    content: Any = Field(..., description="Arbitrary JSON content for the section")


class SettingsRequest(BaseModel):
    """Global store settings. Unknown keys are stored as given (after sanitizing)."""
    delivery_charge: Optional[float] = Field(None, ge=0, description="Flat delivery charge in INR")

    model_config = {"extra": "allow"}


class SiteContentResponse(BaseModel):
    section: str
    content: Any

    model_config = {"extra": "allow"}


# --- Categories ---

class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None


# --- Uploads ---

class UploadResponse(BaseModel):
    safe: bool = True
    path: str = Field(..., description="Storage path", examples=["uploads/1700000000000-ab12cd34.jpg"])
    url: str = Field(..., description="Public URL")
