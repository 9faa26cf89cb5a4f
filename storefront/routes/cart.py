"""
Cart API endpoints.

Endpoints:
- GET /cart - Cart lines, available add-ons and a tentative quote
- POST /cart/items - Add a product (quantity +1 if already present)
- PATCH /cart/items/{item_id} - Change quantity
- DELETE /cart/items/{item_id} - Remove one line
- DELETE /cart - Empty the cart
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from storefront.auth.dependencies import AuthenticatedUser, get_authenticated_user
from storefront.db.client import get_supabase_client
from storefront.schemas.cart import (
    CartItemCreateRequest,
    CartItemDeleteResponse,
    CartItemResponse,
    CartItemUpdateRequest,
    CartResponse,
    QuoteResponse,
)
from storefront.schemas.catalog import AddOnResponse
from storefront.services.cart_service import (
    add_to_cart,
    clear_cart,
    get_add_ons,
    get_cart_items,
    remove_cart_item,
    update_cart_quantity,
)
from storefront.services.checkout_service import get_delivery_charge
from storefront.services.pricing import OrderQuote, build_quote, cart_item_total, index_add_ons

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])


def quote_response(quote: OrderQuote) -> QuoteResponse:
    return QuoteResponse(
        subtotal=float(quote.subtotal),
        delivery_charge=float(quote.delivery_charge),
        discount=float(quote.discount),
        total=float(quote.total),
        coupon_code=quote.coupon_code,
    )


def _cart_item_response(item: dict, item_total=None) -> CartItemResponse:
    return CartItemResponse(
        id=str(item["id"]),
        product_id=str(item["product_id"]),
        quantity=int(item.get("quantity") or 1),
        selected_add_ons=item.get("selected_add_ons") or [],
        item_total=float(item_total) if item_total is not None else None,
        products=item.get("products"),
    )


@router.get(
    "",
    response_model=CartResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the cart",
    description="""
    Return the user's cart lines with line totals, all add-ons and a quote.

    The quote is tentative; the order total is recalculated by the database
    when the order is placed.
    """
)
async def get_cart(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        items = await get_cart_items(supabase_client, auth_user.user_id)
        add_ons = await get_add_ons(supabase_client)
        delivery_charge = await get_delivery_charge(supabase_client)
    except Exception as e:
        logger.error(f"Failed to fetch cart: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "fetch_error", "details": "Failed to retrieve cart"}
        )

    prices = index_add_ons(add_ons)
    quote = build_quote(items, add_ons, delivery_charge)

    return CartResponse(
        items=[_cart_item_response(item, cart_item_total(item, prices)) for item in items],
        add_ons=[AddOnResponse(**a) for a in add_ons],
        quote=quote_response(quote),
    )


@router.post(
    "/items",
    response_model=CartItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a product to the cart",
)
async def post_cart_item(
    request: CartItemCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartItemResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        item = await add_to_cart(
            supabase_client,
            auth_user.user_id,
            request.product_id,
            request.selected_add_ons,
        )
        return _cart_item_response(item)

    except Exception as e:
        logger.error(f"Failed to add to cart: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "create_error", "details": "Failed to add item to cart"}
        )


@router.patch(
    "/items/{item_id}",
    response_model=CartItemResponse,
    summary="Change the quantity of a cart line",
)
async def patch_cart_item(
    item_id: str,
    request: CartItemUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartItemResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        item = await update_cart_quantity(
            supabase_client, auth_user.user_id, item_id, request.quantity
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to update cart item {item_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "update_error", "details": "Failed to update cart item"}
        )

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "details": f"Cart item {item_id} not found"}
        )

    return _cart_item_response(item)


@router.delete(
    "/items/{item_id}",
    response_model=CartItemDeleteResponse,
    summary="Remove a cart line",
)
async def delete_cart_item(
    item_id: str,
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartItemDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        deleted = await remove_cart_item(supabase_client, auth_user.user_id, item_id)
    except Exception as e:
        logger.error(f"Failed to remove cart item {item_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "delete_error", "details": "Failed to remove cart item"}
        )

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "not_found", "details": f"Cart item {item_id} not found"}
        )

    return CartItemDeleteResponse(status="DELETED", message="Item removed from cart")


@router.delete(
    "",
    response_model=CartItemDeleteResponse,
    summary="Empty the cart",
)
async def delete_cart(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> CartItemDeleteResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        await clear_cart(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Failed to clear cart: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "delete_error", "details": "Failed to clear cart"}
        )

    return CartItemDeleteResponse(status="DELETED", message="Cart cleared")
