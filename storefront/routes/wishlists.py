"""
Wishlist API endpoints.

Endpoints:
- GET /wishlist - Saved products
- POST /wishlist - Save a product (idempotent)
- DELETE /wishlist/{product_id} - Remove a saved product
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_supabase_client
from storefront.schemas.cart import CartItemDeleteResponse
from storefront.schemas.wishlists import (
    WishlistAddRequest,
    WishlistItemResponse,
    WishlistResponse,
)
from storefront.services.wishlist_service import (
    add_to_wishlist,
    get_wishlist,
    remove_from_wishlist,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("", response_model=WishlistResponse, summary="Get the wishlist")
async def list_wishlist(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> WishlistResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        rows = await get_wishlist(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Failed to fetch wishlist: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve wishlist"}
        )

    items = [WishlistItemResponse(**row) for row in rows]
    return WishlistResponse(items=items, count=len(items))


@router.post(
    "",
    response_model=WishlistItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a product",
)
async def post_wishlist_item(
    request: WishlistAddRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> WishlistItemResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        row = await add_to_wishlist(supabase_client, auth_user.user_id, request.product_id)
    except Exception as e:
        logger.error(f"Failed to add to wishlist: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "create_error", "details": "Failed to add to wishlist"}
        )

    return WishlistItemResponse(**row)


@router.delete(
    "/{product_id}",
    response_model=CartItemDeleteResponse,
    summary="Remove a saved product",
)
async def delete_wishlist_item(
    product_id: str,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartItemDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        removed = await remove_from_wishlist(supabase_client, auth_user.user_id, product_id)
    except Exception as e:
        logger.error(f"Failed to remove from wishlist: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "delete_error", "details": "Failed to remove from wishlist"}
        )

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "details": "Product is not in the wishlist"}
        )

    return CartItemDeleteResponse(status="DELETED", message="Removed from wishlist")
