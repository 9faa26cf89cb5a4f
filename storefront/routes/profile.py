"""
Profile API endpoints.

Endpoints:
- GET /profile - Get the user's profile
- PATCH /profile - Update name, mobile number, city or state
- GET /profile/orders - Order history with item snapshots
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_supabase_client
from storefront.schemas.profile import (
    OrderHistoryResponse,
    ProfileResponse,
    ProfileUpdateRequest,
)
from storefront.services.profile_service import get_order_history, get_profile, update_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
    summary="Get user profile",
    description="""
    Retrieve the authenticated user's profile.

    Security:
    - Requires valid authentication
    - RLS enforces id = auth.uid()
    """
)
async def get_user_profile_endpoint(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ProfileResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        profile = await get_profile(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Failed to fetch profile: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve profile"}
        )

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "details": "Profile not found"}
        )

    return ProfileResponse(**profile)


@router.patch(
    "",
    response_model=ProfileResponse,
    summary="Update user profile",
    description="Only provided fields are updated. At least one field is required.",
)
async def update_user_profile_endpoint(
    request: ProfileUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ProfileResponse:
    updates = request.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "No fields to update"}
        )

    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        profile = await update_profile(supabase_client, auth_user.user_id, **updates)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to update profile: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "update_error", "details": "Failed to update profile"}
        )

    return ProfileResponse(**profile)


@router.get(
    "/orders",
    response_model=OrderHistoryResponse,
    summary="Order history",
)
async def get_orders_endpoint(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> OrderHistoryResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        orders = await get_order_history(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Failed to fetch order history: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve orders"}
        )

    return OrderHistoryResponse(orders=orders, count=len(orders))
