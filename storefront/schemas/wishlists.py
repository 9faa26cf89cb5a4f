"""
Pydantic models for wishlist endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WishlistItemResponse(BaseModel):
    id: str = Field(..., description="Wishlist row UUID")
    product_id: str = Field(..., description="Saved product UUID")
    created_at: Optional[str] = None
    products: Optional[Dict[str, Any]] = Field(None, description="Joined product row")

    model_config = {"extra": "allow"}


class WishlistResponse(BaseModel):
    items: List[WishlistItemResponse]
    count: int


class WishlistAddRequest(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product UUID")
