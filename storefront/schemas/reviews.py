"""
Pydantic models for product reviews.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ReviewResponse(BaseModel):
    id: str = Field(..., description="Review UUID")
    product_id: str = Field(..., description="Reviewed product UUID")
    user_id: Optional[str] = Field(None, description="Reviewer UUID")
    rating: int = Field(..., ge=1, le=5)
    comment: str
    verified_purchase: bool = False
    created_at: Optional[str] = None
    products: Optional[Dict[str, Any]] = Field(None, description="Joined product name")
    profiles: Optional[Dict[str, Any]] = Field(None, description="Joined reviewer name")

    model_config = {"extra": "allow"}


class ReviewListResponse(BaseModel):
    reviews: List[ReviewResponse]
    count: int


class ReviewCreateRequest(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product UUID")
    rating: int = Field(..., ge=1, le=5, description="1 to 5 stars")
    comment: str = Field(..., min_length=10, max_length=500, description="Review text")

    @field_validator("comment", mode="before")
    @classmethod
    def strip_comment(cls, v: Any) -> Any:
        """Length limits apply to the trimmed text."""
        if isinstance(v, str):
            return v.strip()
        return v
