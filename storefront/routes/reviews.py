"""
Review API endpoints.

Endpoints:
- GET /reviews - Recent reviews across the store (public)
- GET /products/{product_id}/reviews - Reviews of one product (public)
- POST /reviews - Submit a review (authenticated)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_anon_client, get_supabase_client
from storefront.schemas.reviews import ReviewCreateRequest, ReviewListResponse, ReviewResponse
from storefront.services.review_service import (
    list_product_reviews,
    list_recent_reviews,
    submit_review,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


@router.get(
    "/reviews",
    response_model=ReviewListResponse,
    summary="Recent reviews",
)
async def get_recent_reviews(
    limit: Annotated[int, Query(ge=1, le=50)] = 20,
) -> ReviewListResponse:
    try:
        reviews = await list_recent_reviews(get_anon_client(), limit=limit)
    except Exception as e:
        logger.error(f"Failed to fetch reviews: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve reviews"}
        )

    items = [ReviewResponse(**r) for r in reviews]
    return ReviewListResponse(reviews=items, count=len(items))


@router.get(
    "/products/{product_id}/reviews",
    response_model=ReviewListResponse,
    summary="Reviews of a product",
)
async def get_product_reviews(product_id: str) -> ReviewListResponse:
    try:
        reviews = await list_product_reviews(get_anon_client(), product_id)
    except Exception as e:
        logger.error(f"Failed to fetch reviews for product {product_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve reviews"}
        )

    items = [ReviewResponse(**r) for r in reviews]
    return ReviewListResponse(reviews=items, count=len(items))


@router.post(
    "/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a review",
    description="""
    Review a product: rating 1-5 and a comment of 10-500 characters.

    Reviews submitted here are never marked as verified purchases.
    """
)
async def post_review(
    request: ReviewCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> ReviewResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        review = await submit_review(
            supabase_client,
            auth_user.user_id,
            request.product_id,
            request.rating,
            request.comment,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to submit review: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "create_error", "details": "Failed to submit review"}
        )

    return ReviewResponse(**review)
