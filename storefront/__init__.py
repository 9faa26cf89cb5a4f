"""
Handloom saree storefront backend.

FastAPI service in front of Supabase (auth, Postgres with RLS, storage, RPC)
covering the shop, cart, checkout, payments, reviews and the admin back-office.
"""
