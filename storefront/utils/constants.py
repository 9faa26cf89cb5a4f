"""
Shared constants for order lifecycle, payments, auth cookies and rate limits.

Values mirror DB CHECK constraints and the names stored in `rate_limits.endpoint`.
"""

# Order statuses written by checkout and payment flows
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_PAID = "paid"
ORDER_STATUS_FAILED = "failed"

# Statuses an admin may set manually
ADMIN_ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

PAYMENT_METHODS = ("card", "upi", "netbanking", "cod")
CASH_ON_DELIVERY = "cod"

COUPON_STATUSES = ("active", "inactive")

# site_content sections
SETTINGS_SECTION = "settings"
HOMEPAGE_HERO_SECTION = "homepage_hero"

# Auth / CSRF cookies
AUTH_COOKIE_NAME = "sb_jwt"
AUTH_COOKIE_DEFAULT_MAX_AGE = 60 * 60 * 8
CSRF_COOKIE_NAME = "XSRF-TOKEN"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_COOKIE_MAX_AGE = 60 * 60

# Per-user rate limits backed by the rate_limits table
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMITS = {
    'CREATE_GATEWAY_ORDER': ('razorpay-create-order', 5),
    'VERIFY_PAYMENT': ('razorpay-verify-payment', 10),
}

SECURITY_HEADERS = {
    'Strict-Transport-Security': 'max-age=63072000; includeSubDomains; preload',
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}
