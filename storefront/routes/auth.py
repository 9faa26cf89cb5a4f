"""
Auth API endpoints.

Provides endpoints for session handling in browser clients:
- GET /auth/me - Get authenticated user identity, roles and profile summary
- POST /auth/session - Store the access token in the HttpOnly sb_jwt cookie
- POST /auth/logout - Clear the sb_jwt cookie
- GET /auth/csrf-token - Issue a double-submit CSRF token (XSRF-TOKEN cookie)
"""

import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from storefront.auth.dependencies import (
    AuthenticatedUser,
    decode_access_token,
    fetch_user_roles,
    get_authenticated_user,
)
from storefront.config import settings
from storefront.db.client import get_supabase_client
from storefront.schemas.auth import (
    AuthMeResponse,
    CsrfTokenResponse,
    SessionRequest,
    SessionResponse,
)
from storefront.services.profile_service import get_profile
from storefront.services.rate_limit import enforce_ip_rate_limit
from storefront.utils.constants import (
    AUTH_COOKIE_DEFAULT_MAX_AGE,
    AUTH_COOKIE_NAME,
    CSRF_COOKIE_MAX_AGE,
    CSRF_COOKIE_NAME,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get(
    "/me",
    response_model=AuthMeResponse,
    status_code=status.HTTP_200_OK,
    summary="Get authenticated user identity",
    description="""
    Get the authenticated user's identity for session hydration.

    This endpoint:
    - Validates the bearer token (or sb_jwt cookie)
    - Returns user_id and email from JWT claims
    - Returns application roles (admin screens are shown only when is_admin)
    - Includes the profile if one exists

    Security:
    - Requires valid authentication
    - RLS ensures users only see their own profile
    """
)
async def get_auth_me(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AuthMeResponse:
    """Get the authenticated user's identity."""
    roles = []
    try:
        roles = fetch_user_roles(auth_user.user_id)
    except Exception as e:
        logger.warning(f"Role lookup failed for user_id={auth_user.user_id}: {e}")

    profile = None
    try:
        supabase_client = get_supabase_client(auth_user.access_token)
        profile = await get_profile(supabase_client, auth_user.user_id)
    except Exception as e:
        logger.error(f"Error fetching profile for auth/me: {e}")

    return AuthMeResponse(
        user_id=auth_user.user_id,
        email=auth_user.email,
        roles=roles,
        is_admin="admin" in roles,
        profile=profile,
    )


@router.post(
    "/session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Start a cookie session",
    description="""
    Verify a Supabase access token and store it in the HttpOnly `sb_jwt` cookie.

    The cookie lives for `expires_in` seconds (default 8 hours) and is sent
    with SameSite=Lax; it is marked Secure in production.
    """,
    dependencies=[Depends(enforce_ip_rate_limit)],
)
async def create_session(request: SessionRequest, response: Response) -> SessionResponse:
    """Set the sb_jwt cookie after verifying the token."""
    payload = decode_access_token(request.access_token)

    max_age = request.expires_in or AUTH_COOKIE_DEFAULT_MAX_AGE
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=request.access_token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.is_production(),
        samesite="lax",
    )

    logger.info(f"Session cookie set for user_id={payload.get('sub')} (max_age={max_age})")
    return SessionResponse(success=True)


@router.post(
    "/logout",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="End the cookie session",
    dependencies=[Depends(enforce_ip_rate_limit)],
)
async def logout(response: Response) -> SessionResponse:
    """Clear the sb_jwt cookie."""
    response.delete_cookie(
        key=AUTH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production(),
        samesite="lax",
    )
    return SessionResponse(success=True)


@router.get(
    "/csrf-token",
    response_model=CsrfTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Issue a CSRF token",
    description="""
    Issue a random CSRF token (32 bytes, hex encoded).

    The token is returned in the body and set in the readable `XSRF-TOKEN`
    cookie for one hour. Admin mutations must echo it in the
    `x-csrf-token` header.
    """
)
async def get_csrf_token(response: Response) -> CsrfTokenResponse:
    """Generate and set the double-submit CSRF token."""
    token = secrets.token_hex(32)
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
        httponly=False,
        secure=settings.is_production(),
        samesite="lax",
    )
    return CsrfTokenResponse(csrf_token=token)
