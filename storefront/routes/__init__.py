"""
FastAPI routers for all API endpoints.

Each module defines a router for a specific domain (catalog, cart, checkout...).
Routes authenticate, validate, call the service layer and map results to
response models; they hold no business logic of their own.
"""
