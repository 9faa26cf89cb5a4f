"""
Supabase client factory with RLS enforcement.

This module provides Supabase clients for the three trust levels the
storefront works with:

1. Authenticated customer requests: publishable key + the user's JWT, so
   Row Level Security scopes every query to auth.uid()
2. Public catalog reads: publishable key without a session (anon role)
3. Privileged operations (admin mutations, payment webhooks, ownership
   checks during payment verification): the secret service-role key,
   which bypasses RLS

CRITICAL SECURITY RULES:
1. NEVER use the service role client for customer-initiated reads or writes
2. The user client MUST be created per-request with the user's token
"""

import logging

from storefront.config import settings
from supabase import Client, create_client

logger = logging.getLogger(__name__)


def get_supabase_client(access_token: str) -> Client:
    """
    Create an authenticated Supabase client for a specific user.

    This client respects Row Level Security (RLS) policies because every
    PostgREST request carries the user's JWT access token.

    Args:
        access_token: The user's JWT access token from Supabase Auth.
                     This is the token verified in storefront/auth/dependencies.py.

    Returns:
        An authenticated Supabase client that enforces RLS.

    Example:
        >>> client = get_supabase_client(auth_user.access_token)
        >>> result = client.table("cart_items").select("*").execute()
    """
    client: Client = create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )

    # The token's 'sub' claim is what RLS policies see as auth.uid()
    client.postgrest.auth(access_token)

    logger.debug(
        "Created authenticated Supabase client with user token "
        "(RLS enforced)"
    )

    return client


def get_anon_client() -> Client:
    """
    Create a Supabase client for public (unauthenticated) reads.

    Used for the catalog: products, categories, add-ons and published reviews.
    RLS policies for the anon role decide what is visible.
    """
    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY
    )


def get_service_role_client() -> Client:
    """
    Create a Supabase client with service_role privileges.

    WARNING: This bypasses RLS and should ONLY be used for:
    - Admin mutations behind require_admin
    - Payment webhook processing (no user session exists)
    - Cross-user ownership checks during payment verification

    Returns:
        A Supabase client with service_role privileges (bypasses RLS).

    Raises:
        RuntimeError: If SUPABASE_SECRET_KEY is not configured.
    """
    if not settings.SUPABASE_SECRET_KEY:
        raise RuntimeError(
            "SUPABASE_SECRET_KEY is not configured. "
            "Privileged operations are unavailable."
        )

    logger.debug("Created service role Supabase client (RLS bypassed)")

    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_SECRET_KEY
    )
