"""
Logging utilities for the storefront backend.

Provides standardized logger configuration following security and privacy rules.

CRITICAL SECURITY RULES:
- NEVER log Supabase Auth tokens, API keys, or secrets
- NEVER log payment signatures or gateway key secrets
- NEVER log full shipping addresses, phone numbers or emails

Acceptable logging:
- High-level events (e.g., "Order created", "Webhook received")
- Identifiers (order ids, gateway order/payment ids, user ids)
- Error codes and sanitized error messages
"""

import logging
from typing import Optional


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger for the specified module.

    Args:
        name: Module name (typically __name__)
        level: Optional logging level (defaults to INFO)

    Returns:
        Configured logger instance

    Usage:
        >>> from storefront.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("High-level event occurred")
    """
    logger = logging.getLogger(name)

    if level is None:
        level = logging.INFO

    logger.setLevel(level)

    # Add handler if not already configured (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
