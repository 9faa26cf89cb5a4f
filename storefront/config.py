"""
Configuration module for the storefront backend.

Loads environment variables and validates required settings.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Supabase Configuration
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_PUBLISHABLE_KEY: str = os.getenv("SUPABASE_PUBLISHABLE_KEY", "")
    # Secret (service role) key: bypasses RLS, used for admin and webhook writes only
    SUPABASE_SECRET_KEY: str = os.getenv("SUPABASE_SECRET_KEY", "")

    @property
    def SUPABASE_JWKS_URL(self) -> str:
        """Get the JWKS URL for JWT verification."""
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

    # Supabase Storage Configuration
    SUPABASE_STORAGE_BUCKET: str = os.getenv("SUPABASE_STORAGE_BUCKET", "uploads")

    # Razorpay payment gateway
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_WEBHOOK_SECRET: str = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "INR")

    # Transactional email (Resend)
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    EMAIL_FROM: str = os.getenv(
        "EMAIL_FROM", "HandloomByKrishnKunj <onboarding@resend.dev>"
    )
    STORE_NAME: str = os.getenv("STORE_NAME", "HandloomByKrishnKunj")

    # Optional malware scanning for admin uploads
    SCAN_API_URL: str = os.getenv("SCAN_API_URL", "")
    SCAN_API_KEY: str = os.getenv("SCAN_API_KEY", "")

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Settings (comma separated, required in production)
    CORS_ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required settings are configured.

        Raises:
            ValueError: If any required setting is missing.
        """
        required_settings = {
            "SUPABASE_URL": cls.SUPABASE_URL,
            "SUPABASE_PUBLISHABLE_KEY": cls.SUPABASE_PUBLISHABLE_KEY,
        }

        missing = [key for key, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"

    def payments_configured(self) -> bool:
        """Check if Razorpay API credentials are present."""
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)


# Create a singleton instance
settings = Settings()

# Validate settings on module import (will fail fast if misconfigured)
# Skip validation during tests or when importing for introspection
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # In development, warn but don't crash
        if settings.is_development():
            print(f"⚠️  Warning: {e}")
            print("   The app may not work correctly until you configure your .env file.")
        else:
            raise
