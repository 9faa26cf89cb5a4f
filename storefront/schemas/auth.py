"""
Pydantic models for authentication endpoints.

Browser clients exchange their Supabase access token for an HttpOnly
session cookie, and fetch a CSRF token before admin mutations.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AuthMeResponse(BaseModel):
    """Response for GET /auth/me."""
    user_id: str = Field(..., description="Authenticated user UUID")
    email: Optional[str] = Field(None, description="Email claim of the access token")
    roles: List[str] = Field(default_factory=list, description="Application roles (e.g. 'admin')")
    is_admin: bool = Field(False, description="True when roles contains 'admin'")
    profile: Optional[Dict[str, Any]] = Field(None, description="Profile summary, if one exists")


class SessionRequest(BaseModel):
    """Request for POST /auth/session."""
    access_token: str = Field(..., min_length=1, description="Supabase access token (JWT)")
    expires_in: Optional[int] = Field(
        None,
        gt=0,
        description="Cookie lifetime in seconds (defaults to 8 hours)",
        examples=[3600]
    )


class SessionResponse(BaseModel):
    success: bool = Field(True, description="True when the cookie was set or cleared")


class CsrfTokenResponse(BaseModel):
    """Response for GET /auth/csrf-token. The same value is set in the XSRF-TOKEN cookie."""
    csrf_token: str = Field(..., description="64 hex characters")
