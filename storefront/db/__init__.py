"""
Database access layer for the storefront backend.

All database operations MUST:
- Respect Row Level Security (RLS) for customer requests
- Use the service role client only for admin and webhook paths

DO NOT define table schemas, migrations, or RLS policies here.
Server-side computations (order total recalculation, webhook replay
bookkeeping, role checks) live in Postgres functions called via RPC.
"""

from .client import get_anon_client, get_service_role_client, get_supabase_client

__all__ = ["get_supabase_client", "get_anon_client", "get_service_role_client"]
