"""
Public catalog API endpoints (no authentication required).

Endpoints:
- GET /products - List products with shop filters
- GET /products/best-sellers - Best seller rail
- GET /products/new-arrivals - Newest available products
- GET /products/{product_id} - Single product
- GET /products/{product_id}/related - Same-category suggestions
- GET /categories - All categories
- GET /add-ons - All purchasable add-ons
"""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from storefront.db.client import get_anon_client
from storefront.schemas.catalog import (
    AddOnListResponse,
    AddOnResponse,
    CategoryListResponse,
    CategoryResponse,
    ProductDetailResponse,
    ProductListResponse,
    ProductResponse,
)
from storefront.services.catalog_service import (
    get_product,
    get_related_products,
    list_add_ons,
    list_best_sellers,
    list_categories,
    list_new_arrivals,
    list_products,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


def _fetch_error(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "fetch_error", "details": f"Failed to retrieve {what}"}
    )


def _product_list(products: list, limit: int, offset: int) -> ProductListResponse:
    items = [ProductResponse(**p) for p in products]
    return ProductListResponse(products=items, count=len(items), limit=limit, offset=offset)


@router.get(
    "/products",
    response_model=ProductListResponse,
    status_code=status.HTTP_200_OK,
    summary="List products",
    description="""
    List catalog products, newest first.

    Filters:
    - category_id: only this category
    - available: only orderable products
    - min_price / max_price: inclusive price range in INR
    - color (repeatable): any of these colors
    - fabric: this fabric
    """
)
async def get_products(
    category_id: Optional[str] = None,
    available: bool = False,
    min_price: Annotated[Optional[float], Query(ge=0)] = None,
    max_price: Annotated[Optional[float], Query(ge=0)] = None,
    color: Annotated[Optional[List[str]], Query()] = None,
    fabric: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ProductListResponse:
    """List products with shop filters."""
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "min_price cannot exceed max_price"}
        )

    try:
        products = await list_products(
            supabase_client=get_anon_client(),
            category_id=category_id,
            available_only=available,
            min_price=min_price,
            max_price=max_price,
            colors=color,
            fabric=fabric,
            limit=limit,
            offset=offset,
        )
        return _product_list(products, limit, offset)

    except Exception as e:
        logger.error(f"Failed to fetch products: {e}", exc_info=True)
        raise _fetch_error("products")


@router.get(
    "/products/best-sellers",
    response_model=ProductListResponse,
    summary="List best sellers",
)
async def get_best_sellers(
    limit: Annotated[int, Query(ge=1, le=50)] = 8,
) -> ProductListResponse:
    try:
        products = await list_best_sellers(get_anon_client(), limit=limit)
        return _product_list(products, limit, 0)
    except Exception as e:
        logger.error(f"Failed to fetch best sellers: {e}", exc_info=True)
        raise _fetch_error("best sellers")


@router.get(
    "/products/new-arrivals",
    response_model=ProductListResponse,
    summary="List new arrivals",
)
async def get_new_arrivals(
    limit: Annotated[int, Query(ge=1, le=50)] = 8,
) -> ProductListResponse:
    try:
        products = await list_new_arrivals(get_anon_client(), limit=limit)
        return _product_list(products, limit, 0)
    except Exception as e:
        logger.error(f"Failed to fetch new arrivals: {e}", exc_info=True)
        raise _fetch_error("new arrivals")


@router.get(
    "/products/{product_id}",
    response_model=ProductDetailResponse,
    summary="Get a product",
)
async def get_product_detail(product_id: str) -> ProductDetailResponse:
    try:
        product = await get_product(get_anon_client(), product_id)
    except Exception as e:
        logger.error(f"Failed to fetch product {product_id}: {e}", exc_info=True)
        raise _fetch_error("product")

    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "details": f"Product {product_id} not found"}
        )

    return ProductDetailResponse(product=ProductResponse(**product))


@router.get(
    "/products/{product_id}/related",
    response_model=ProductListResponse,
    summary="Related products",
    description="Up to 4 other available products of the same category.",
)
async def get_product_related(product_id: str) -> ProductListResponse:
    client = get_anon_client()
    try:
        product = await get_product(client, product_id)
        if product is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "not_found", "details": f"Product {product_id} not found"}
            )
        related = await get_related_products(client, product)
        return _product_list(related, 4, 0)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch related products for {product_id}: {e}", exc_info=True)
        raise _fetch_error("related products")


@router.get(
    "/categories",
    response_model=CategoryListResponse,
    summary="List categories",
)
async def get_categories() -> CategoryListResponse:
    try:
        categories = await list_categories(get_anon_client())
    except Exception as e:
        logger.error(f"Failed to fetch categories: {e}", exc_info=True)
        raise _fetch_error("categories")

    items = [CategoryResponse(**c) for c in categories]
    return CategoryListResponse(categories=items, count=len(items))


@router.get(
    "/add-ons",
    response_model=AddOnListResponse,
    summary="List add-ons",
)
async def get_add_ons_list() -> AddOnListResponse:
    try:
        add_ons = await list_add_ons(get_anon_client())
    except Exception as e:
        logger.error(f"Failed to fetch add-ons: {e}", exc_info=True)
        raise _fetch_error("add-ons")

    items = [AddOnResponse(**a) for a in add_ons]
    return AddOnListResponse(add_ons=items, count=len(items))
