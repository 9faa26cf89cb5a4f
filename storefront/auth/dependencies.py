"""
FastAPI dependency functions for authentication, admin role checks and CSRF.

These functions are used as FastAPI dependencies to verify tokens
and extract authenticated user_id from Supabase Auth.

Uses Supabase's JWT Signing Keys system with ECC (P-256) public key verification.
Browser clients may send the token in the HttpOnly `sb_jwt` cookie instead of
the Authorization header (see POST /auth/session).
"""

import hmac
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Optional, cast

from fastapi import Cookie, Depends, Header, HTTPException, status
from jwt import PyJWKClient, decode
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from storefront.config import settings
from storefront.db.client import get_service_role_client

logger = logging.getLogger(__name__)

# Initialize JWKS client for fetching and caching Supabase's public keys
_jwks_client: PyJWKClient | None = None


@dataclass
class AuthenticatedUser:
    """
    Represents an authenticated user with their token.

    Attributes:
        user_id: The user's UUID from the JWT token's 'sub' claim
        access_token: The full JWT access token (for creating authenticated Supabase clients)
        email: The 'email' claim, when present
        roles: Application roles, populated by require_admin
    """
    user_id: str
    access_token: str
    email: Optional[str] = None
    roles: List[str] = field(default_factory=list)


def get_jwks_client() -> PyJWKClient:
    """
    Get or create the JWKS client instance.

    Lazy initialization ensures we only create the client when needed.

    Raises:
        ValueError: If SUPABASE_URL is not configured
    """
    global _jwks_client

    if _jwks_client is None:
        jwks_url = settings.SUPABASE_JWKS_URL
        if not jwks_url:
            raise ValueError(
                "SUPABASE_URL is not configured. "
                "Cannot construct JWKS URL for JWT verification."
            )

        logger.info(f"Initializing JWKS client with URL: {jwks_url}")
        _jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
        )

    return _jwks_client


def _unauthorized(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "details": details}
    )


def _extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> str:
    """
    Pull the bearer token from the Authorization header, falling back to the sb_jwt cookie.

    Raises:
        HTTPException: 401 if neither source carries a usable token
    """
    if authorization:
        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning("Invalid Authorization header format")
            raise _unauthorized("unauthorized", "Invalid Authorization header format")
        return parts[1]

    if cookie_token:
        return cookie_token

    logger.warning("Missing Authorization header")
    raise _unauthorized("unauthorized", "Missing Authorization header")


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Checks ES256 signature (JWKS), expiration, audience 'authenticated' and
    the project issuer '<SUPABASE_URL>/auth/v1'.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        jwks_client = get_jwks_client()
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        issuer = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1"

        payload = decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience="authenticated",
            issuer=issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
                "verify_iss": True,
            }
        )
        return cast(Dict[str, Any], payload)

    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized("token_expired", "Authentication token has expired")

    except PyJWKClientError as e:
        logger.error(f"JWKS client error: {str(e)}")
        raise _unauthorized("jwks_error", "Unable to verify token signature")

    except InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise _unauthorized("invalid_token", "Invalid authentication token")

    except Exception as e:
        logger.error(f"Unexpected error during token verification: {str(e)}")
        raise _unauthorized("unauthorized", "Token verification failed")


async def get_authenticated_user(
    authorization: Annotated[str | None, Header()] = None,
    sb_jwt: Annotated[str | None, Cookie()] = None,
) -> AuthenticatedUser:
    """
    Verify token and return authenticated user with token.

    Args:
        authorization: Authorization header value ("Bearer <token>")
        sb_jwt: HttpOnly session cookie set by POST /auth/session

    Returns:
        AuthenticatedUser: Contains user_id, access_token and email

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired

    Security:
        - This is the ONLY source of truth for user_id
        - Any user_id sent in request body is ignored

    Usage:
        @router.post("/checkout/orders")
        async def place(auth_user: AuthenticatedUser = Depends(get_authenticated_user)):
            supabase_client = get_supabase_client(auth_user.access_token)
    """
    token = _extract_token(authorization, sb_jwt)
    payload = decode_access_token(token)

    user_id = payload.get("sub")
    if not user_id:
        logger.error("Token payload missing 'sub' claim")
        raise _unauthorized("unauthorized", "Invalid token: missing user ID")

    logger.info(f"Token verified successfully for user_id={user_id}")

    email = payload.get("email")
    return AuthenticatedUser(
        user_id=str(user_id),
        access_token=token,
        email=str(email) if email else None,
    )


def fetch_user_roles(user_id: str) -> List[str]:
    """
    Read the user's application roles with the service role client.

    Role rows are protected by RLS, so the lookup bypasses it deliberately.
    """
    admin_client = get_service_role_client()
    result = (
        admin_client.table("user_roles")
        .select("role")
        .eq("user_id", user_id)
        .execute()
    )
    rows = cast(List[Dict[str, Any]], result.data or [])
    return [str(row.get("role")) for row in rows if row.get("role")]


async def require_admin(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AuthenticatedUser:
    """
    Ensure the authenticated user holds the 'admin' role.

    Raises:
        HTTPException: 403 if the user is not an admin or the lookup fails
    """
    try:
        roles = fetch_user_roles(auth_user.user_id)
    except Exception as e:
        logger.error(f"Role lookup failed for user_id={auth_user.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": "Admins only"}
        )

    if "admin" not in roles:
        logger.warning(f"Non-admin user_id={auth_user.user_id} attempted admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": "Admins only"}
        )

    auth_user.roles = roles
    return auth_user


async def verify_csrf(
    csrf_header: Annotated[str | None, Header(alias="x-csrf-token")] = None,
    csrf_cookie: Annotated[str | None, Cookie(alias="XSRF-TOKEN")] = None,
) -> None:
    """
    Double-submit CSRF check for cookie-authenticated admin mutations.

    The x-csrf-token header must equal the XSRF-TOKEN cookie issued by
    GET /auth/csrf-token.

    Raises:
        HTTPException: 403 if either value is missing or they differ
    """
    if not csrf_header or not csrf_cookie or not hmac.compare_digest(csrf_header, csrf_cookie):
        logger.warning("CSRF token missing or invalid")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "csrf_invalid", "details": "CSRF token missing or invalid"}
        )
