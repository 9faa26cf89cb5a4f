"""
Pydantic schemas for API request and response validation.

All FastAPI endpoints use Pydantic models with explicit types. Response
models that mirror database rows allow extra columns so new columns do not
break clients.
"""
