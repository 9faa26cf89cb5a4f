"""
Pydantic schemas for profile endpoints.

Profiles are 1:1 with auth.users and hold contact and shipping details.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# --- Profile response models ---

class ProfileResponse(BaseModel):
    id: str = Field(..., description="User UUID (from auth.users)")
    full_name: Optional[str] = Field(None, description="Customer name")
    email: Optional[str] = Field(None, description="Contact email used for order emails")
    mobile_number: Optional[str] = Field(None, description="10-digit mobile number")
    city: Optional[str] = Field(None, description="Last shipping city")
    state: Optional[str] = Field(None, description="Last shipping state")

    model_config = {"extra": "allow"}


# --- Profile update models ---

class ProfileUpdateRequest(BaseModel):
    """
    Request to update the profile.

    All fields are optional - only provided fields will be updated.
    At least one field must be provided.
    """
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    mobile_number: Optional[str] = Field(
        None,
        pattern=r"^\d{10}$",
        description="10-digit mobile number",
        examples=["9876543210"]
    )
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)

    model_config = {"str_strip_whitespace": True}


# --- Order history ---

class OrderHistoryResponse(BaseModel):
    orders: List[Dict[str, Any]] = Field(..., description="Orders with nested order_items, newest first")
    count: int
