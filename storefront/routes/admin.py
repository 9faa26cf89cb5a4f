"""
Admin back-office API endpoints.

All endpoints require the 'admin' role. Mutations additionally require the
double-submit CSRF token (x-csrf-token header == XSRF-TOKEN cookie) and are
IP rate limited. Writes use the service role client and are audit logged.

Endpoints:
- Products: POST /admin/products, PATCH/DELETE /admin/products/{id},
  POST /admin/products/bulk-delete
- Orders: GET /admin/orders, PATCH /admin/orders/{id}/status
- Coupons: GET/POST /admin/coupons, PATCH/DELETE /admin/coupons/{id},
  PATCH /admin/coupons/{id}/status
- Reviews: GET/POST /admin/reviews, PATCH/DELETE /admin/reviews/{id}
- Content: PUT /admin/content/banners, PUT /admin/content/settings,
  GET/PUT /admin/content/{section}
- Categories: POST /admin/categories, PATCH/DELETE /admin/categories/{id}
- Roles: GET /admin/roles
- Activity: GET /admin/activity
- Customers: GET /admin/customers
- Auth events: GET /admin/auth-events
- Uploads: POST /admin/uploads
"""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from storefront.auth.dependencies import AuthenticatedUser, require_admin, verify_csrf
from storefront.db.client import get_service_role_client
from storefront.schemas.admin import (
    AdminDeleteResponse,
    AdminOrderListResponse,
    AdminReviewCreateRequest,
    AdminReviewUpdateRequest,
    BannersRequest,
    BulkDeleteRequest,
    BulkDeleteResponse,
    CategoryCreateRequest,
    CategoryUpdateRequest,
    CouponCreateRequest,
    CouponStatusRequest,
    CouponUpdateRequest,
    OrderStatusUpdateRequest,
    ProductCreateRequest,
    ProductUpdateRequest,
    SectionRequest,
    SettingsRequest,
    SiteContentResponse,
    UploadResponse,
)
from storefront.services import admin_service
from storefront.services.admin_service import ResourceInUseError
from storefront.services.rate_limit import enforce_ip_rate_limit
from storefront.services.storage import UnsafeUploadError, upload_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

AdminUser = Annotated[AuthenticatedUser, Depends(require_admin)]

MUTATION_DEPENDENCIES = [Depends(verify_csrf), Depends(enforce_ip_rate_limit)]


def _server_error(what: str, e: Exception) -> HTTPException:
    logger.error(f"Admin operation failed ({what}): {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "admin_error", "details": f"Failed to {what}"}
    )


def _not_found(what: str, resource_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "details": f"{what} {resource_id} not found"}
    )


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "invalid_request", "details": str(e)}
    )


def _conflict(e: ResourceInUseError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"error": e.code, "details": e.message}
    )


def _updates(request: Any) -> Dict[str, Any]:
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "No fields to update"}
        )
    return updates


# =============================================================================
# Products
# =============================================================================

@router.post(
    "/products",
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
    description="Rich text is HTML-sanitized and image URLs are checked before they are stored.",
    dependencies=MUTATION_DEPENDENCIES,
)
async def create_product(request: ProductCreateRequest, admin: AdminUser) -> Dict[str, Any]:
    try:
        product = await admin_service.create_product(
            get_service_role_client(), admin.user_id, request.model_dump()
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error("create product", e)
    return {"success": True, "product": product}


@router.patch(
    "/products/{product_id}",
    summary="Update a product",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_product(
    product_id: str,
    request: ProductUpdateRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    updates = _updates(request)
    try:
        product = await admin_service.update_product(
            get_service_role_client(), admin.user_id, product_id, updates
        )
    except Exception as e:
        raise _server_error("update product", e)

    if product is None:
        raise _not_found("Product", product_id)
    return {"success": True, "product": product}


@router.delete(
    "/products/{product_id}",
    response_model=AdminDeleteResponse,
    summary="Delete a product",
    description="Products referenced by existing orders cannot be deleted (409).",
    dependencies=MUTATION_DEPENDENCIES,
)
async def delete_product(product_id: str, admin: AdminUser) -> AdminDeleteResponse:
    try:
        deleted = await admin_service.delete_product(
            get_service_role_client(), admin.user_id, product_id
        )
    except ResourceInUseError as e:
        raise _conflict(e)
    except Exception as e:
        raise _server_error("delete product", e)

    if not deleted:
        raise _not_found("Product", product_id)
    return AdminDeleteResponse(status="DELETED", message="Product deleted")


@router.post(
    "/products/bulk-delete",
    response_model=BulkDeleteResponse,
    summary="Delete several products",
    description="Deletes every product no order references and reports the others as blocked.",
    dependencies=MUTATION_DEPENDENCIES,
)
async def bulk_delete_products(request: BulkDeleteRequest, admin: AdminUser) -> BulkDeleteResponse:
    try:
        result = await admin_service.bulk_delete_products(
            get_service_role_client(), admin.user_id, request.ids
        )
    except Exception as e:
        raise _server_error("delete products", e)
    return BulkDeleteResponse(**result)


# =============================================================================
# Orders
# =============================================================================

@router.get(
    "/orders",
    response_model=AdminOrderListResponse,
    summary="List orders",
)
async def list_orders(
    admin: AdminUser,
    order_status: Annotated[Optional[str], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> AdminOrderListResponse:
    try:
        orders = await admin_service.list_orders(
            get_service_role_client(), status=order_status, limit=limit, offset=offset
        )
    except Exception as e:
        raise _server_error("list orders", e)
    return AdminOrderListResponse(orders=orders, count=len(orders))


@router.patch(
    "/orders/{order_id}/status",
    summary="Update order status",
    description="Allowed statuses: pending, processing, shipped, delivered, cancelled.",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    try:
        order = await admin_service.update_order_status(
            get_service_role_client(), admin.user_id, order_id, request.status
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error("update order status", e)

    if order is None:
        raise _not_found("Order", order_id)
    return {"success": True, "order": order}


# =============================================================================
# Coupons
# =============================================================================

@router.get("/coupons", summary="List coupons")
async def list_coupons(admin: AdminUser) -> Dict[str, Any]:
    try:
        coupons = await admin_service.list_coupons(get_service_role_client())
    except Exception as e:
        raise _server_error("list coupons", e)
    return {"coupons": coupons, "count": len(coupons)}


@router.post(
    "/coupons",
    status_code=status.HTTP_201_CREATED,
    summary="Create a coupon",
    dependencies=MUTATION_DEPENDENCIES,
)
async def create_coupon(request: CouponCreateRequest, admin: AdminUser) -> Dict[str, Any]:
    try:
        coupon = await admin_service.create_coupon(
            get_service_role_client(), admin.user_id, request.model_dump()
        )
    except Exception as e:
        raise _server_error("create coupon", e)
    return {"success": True, "coupon": coupon}


@router.patch(
    "/coupons/{coupon_id}",
    summary="Update a coupon",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_coupon(
    coupon_id: str,
    request: CouponUpdateRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    updates = _updates(request)
    try:
        coupon = await admin_service.update_coupon(
            get_service_role_client(), admin.user_id, coupon_id, updates
        )
    except Exception as e:
        raise _server_error("update coupon", e)

    if coupon is None:
        raise _not_found("Coupon", coupon_id)
    return {"success": True, "coupon": coupon}


@router.patch(
    "/coupons/{coupon_id}/status",
    summary="Activate or deactivate a coupon",
    dependencies=MUTATION_DEPENDENCIES,
)
async def set_coupon_status(
    coupon_id: str,
    request: CouponStatusRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    try:
        coupon = await admin_service.set_coupon_status(
            get_service_role_client(), admin.user_id, coupon_id, request.status
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error("update coupon status", e)

    if coupon is None:
        raise _not_found("Coupon", coupon_id)
    return {"success": True, "coupon": coupon}


@router.delete(
    "/coupons/{coupon_id}",
    response_model=AdminDeleteResponse,
    summary="Delete a coupon",
    dependencies=MUTATION_DEPENDENCIES,
)
async def delete_coupon(coupon_id: str, admin: AdminUser) -> AdminDeleteResponse:
    try:
        deleted = await admin_service.delete_coupon(
            get_service_role_client(), admin.user_id, coupon_id
        )
    except Exception as e:
        raise _server_error("delete coupon", e)

    if not deleted:
        raise _not_found("Coupon", coupon_id)
    return AdminDeleteResponse(status="DELETED", message="Coupon deleted")


# =============================================================================
# Reviews
# =============================================================================

@router.get("/reviews", summary="List reviews")
async def list_reviews(admin: AdminUser) -> Dict[str, Any]:
    try:
        reviews = await admin_service.list_reviews(get_service_role_client())
    except Exception as e:
        raise _server_error("list reviews", e)
    return {"reviews": reviews, "count": len(reviews)}


@router.post(
    "/reviews",
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    dependencies=MUTATION_DEPENDENCIES,
)
async def create_review(request: AdminReviewCreateRequest, admin: AdminUser) -> Dict[str, Any]:
    try:
        review = await admin_service.create_review(
            get_service_role_client(), admin.user_id, request.model_dump(exclude_none=True)
        )
    except Exception as e:
        raise _server_error("create review", e)
    return {"success": True, "review": review}


@router.patch(
    "/reviews/{review_id}",
    summary="Update a review",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_review(
    review_id: str,
    request: AdminReviewUpdateRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    updates = _updates(request)
    try:
        review = await admin_service.update_review(
            get_service_role_client(), admin.user_id, review_id, updates
        )
    except Exception as e:
        raise _server_error("update review", e)

    if review is None:
        raise _not_found("Review", review_id)
    return {"success": True, "review": review}


@router.delete(
    "/reviews/{review_id}",
    response_model=AdminDeleteResponse,
    summary="Delete a review",
    dependencies=MUTATION_DEPENDENCIES,
)
async def delete_review(review_id: str, admin: AdminUser) -> AdminDeleteResponse:
    try:
        deleted = await admin_service.delete_review(
            get_service_role_client(), admin.user_id, review_id
        )
    except Exception as e:
        raise _server_error("delete review", e)

    if not deleted:
        raise _not_found("Review", review_id)
    return AdminDeleteResponse(status="DELETED", message="Review deleted")


# =============================================================================
# Site content
# =============================================================================

@router.put(
    "/content/banners",
    response_model=SiteContentResponse,
    summary="Save homepage banners",
    dependencies=MUTATION_DEPENDENCIES,
)
async def save_banners(request: BannersRequest, admin: AdminUser) -> SiteContentResponse:
    try:
        row = await admin_service.save_banners(
            get_service_role_client(), admin.user_id, request.slides
        )
    except Exception as e:
        raise _server_error("save banners", e)
    return SiteContentResponse(**row)


@router.put(
    "/content/settings",
    response_model=SiteContentResponse,
    summary="Update store settings",
    description="Store-wide settings such as delivery_charge (flat, INR).",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_settings(request: SettingsRequest, admin: AdminUser) -> SiteContentResponse:
    try:
        row = await admin_service.update_settings(
            get_service_role_client(), admin.user_id, request.model_dump(exclude_none=True)
        )
    except ValueError as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error("update settings", e)
    return SiteContentResponse(**row)


@router.get(
    "/content/{section}",
    response_model=SiteContentResponse,
    summary="Get a content section",
)
async def get_section(section: str, admin: AdminUser) -> SiteContentResponse:
    try:
        row = await admin_service.get_section(get_service_role_client(), section)
    except Exception as e:
        raise _server_error("fetch section", e)

    if row is None:
        raise _not_found("Section", section)
    return SiteContentResponse(**row)


@router.put(
    "/content/{section}",
    response_model=SiteContentResponse,
    summary="Save a content section",
    dependencies=MUTATION_DEPENDENCIES,
)
async def save_section(section: str, request: SectionRequest, admin: AdminUser) -> SiteContentResponse:
    try:
        row = await admin_service.save_section(
            get_service_role_client(), admin.user_id, section, request.content
        )
    except Exception as e:
        raise _server_error("save section", e)
    return SiteContentResponse(**row)


# =============================================================================
# Categories
# =============================================================================

@router.post(
    "/categories",
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
    dependencies=MUTATION_DEPENDENCIES,
)
async def create_category(request: CategoryCreateRequest, admin: AdminUser) -> Dict[str, Any]:
    try:
        category = await admin_service.create_category(
            get_service_role_client(), admin.user_id, request.model_dump(exclude_none=True)
        )
    except Exception as e:
        raise _server_error("create category", e)
    return {"success": True, "category": category}


@router.patch(
    "/categories/{category_id}",
    summary="Update a category",
    dependencies=MUTATION_DEPENDENCIES,
)
async def update_category(
    category_id: str,
    request: CategoryUpdateRequest,
    admin: AdminUser,
) -> Dict[str, Any]:
    updates = _updates(request)
    try:
        category = await admin_service.update_category(
            get_service_role_client(), admin.user_id, category_id, updates
        )
    except Exception as e:
        raise _server_error("update category", e)

    if category is None:
        raise _not_found("Category", category_id)
    return {"success": True, "category": category}


@router.delete(
    "/categories/{category_id}",
    response_model=AdminDeleteResponse,
    summary="Delete a category",
    description="Categories that still have products cannot be deleted (409).",
    dependencies=MUTATION_DEPENDENCIES,
)
async def delete_category(category_id: str, admin: AdminUser) -> AdminDeleteResponse:
    try:
        deleted = await admin_service.delete_category(
            get_service_role_client(), admin.user_id, category_id
        )
    except ResourceInUseError as e:
        raise _conflict(e)
    except Exception as e:
        raise _server_error("delete category", e)

    if not deleted:
        raise _not_found("Category", category_id)
    return AdminDeleteResponse(status="DELETED", message="Category deleted")


# =============================================================================
# Roles, activity, customers and uploads
# =============================================================================

@router.get("/roles", summary="List user roles")
async def list_user_roles(admin: AdminUser) -> Dict[str, List[Dict[str, Any]]]:
    try:
        roles = await admin_service.list_user_roles(get_service_role_client())
    except Exception as e:
        raise _server_error("list user roles", e)
    return {"roles": roles}


@router.get("/activity", summary="Recent admin activity")
async def list_activity(admin: AdminUser) -> Dict[str, List[Dict[str, Any]]]:
    try:
        activity = await admin_service.list_activity_log(get_service_role_client())
    except Exception as e:
        raise _server_error("list activity", e)
    return {"activity": activity}


@router.get("/customers", summary="List customers with order counts")
async def list_customers(
    admin: AdminUser,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> Dict[str, Any]:
    try:
        customers = await admin_service.list_customers(
            get_service_role_client(), limit=limit, offset=offset
        )
    except Exception as e:
        raise _server_error("list customers", e)
    return {"customers": customers, "count": len(customers)}


@router.get(
    "/auth-events",
    summary="Recent authentication events",
    description="Latest 100 auth_events rows, optionally filtered by event type or email.",
)
async def list_auth_events(
    admin: AdminUser,
    event_type: Annotated[Optional[str], Query()] = None,
    email: Annotated[Optional[str], Query(max_length=254)] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    try:
        events = await admin_service.list_auth_events(
            get_service_role_client(), event_type=event_type, email=email
        )
    except Exception as e:
        raise _server_error("list auth events", e)
    return {"events": events}


@router.post(
    "/uploads",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an image or PDF",
    description="""
    Scan (when SCAN_API_URL is configured) and upload a file to storage.

    Limits: 5MB; JPEG, PNG, WebP or PDF. A file flagged by the scanner is
    rejected with 400 {"safe": false}.
    """,
    dependencies=MUTATION_DEPENDENCIES,
)
async def upload(admin: AdminUser, file: UploadFile = File(...)):
    file_bytes = await file.read()

    try:
        result = await upload_file(
            get_service_role_client(),
            file_bytes,
            file.filename or "upload",
            file.content_type or "",
        )
    except ValueError as e:
        raise _bad_request(e)
    except UnsafeUploadError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"safe": False}
        )
    except Exception as e:
        raise _server_error("upload file", e)

    logger.info(f"Admin {admin.user_id} uploaded {result.path}")
    return UploadResponse(safe=True, path=result.path, url=result.url)
