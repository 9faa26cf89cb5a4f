"""
Sanitization for admin-authored content.

Product descriptions, banners and content sections are edited as rich text
in the back-office. Before anything is written:

- rich text is cleaned with an allow-list, so stored content never carries
  scripts or event handlers
- link and image fields must be http(s) URLs or site-relative paths
- plain-text fields (names, codes, statuses, dates) are kept as typed; they
  are escaped wherever they are rendered
"""

import re
from typing import Any, Optional
from urllib.parse import urlsplit

import nh3

ALLOWED_TAGS = {
    "p", "br", "strong", "b", "em", "i", "u", "s", "strike",
    "ul", "ol", "li", "a", "img", "span", "div", "mark",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "code", "pre",
}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "target", "title"},
    "img": {"src", "alt", "title", "width", "height"},
}

ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}

# Link and image fields: only these schemes, or a path on this site
SAFE_LINK_SCHEMES = frozenset({"http", "https"})

IDENTIFIER_KEYS = frozenset({"id", "category_id", "product_id", "user_id", "order_id"})

URL_KEYS = frozenset({"images", "image", "image_url", "url", "link", "href", "src"})

PLAIN_TEXT_KEYS = frozenset({
    "name", "title", "code", "status", "section", "role",
    "sku", "color", "fabric", "slug",
    "expiry_date", "created_at", "updated_at",
})

# Browsers drop these before reading a scheme ("java\tscript:")
_URL_IGNORED_CHARS = re.compile(r"[\x00-\x20\x7f]")


def sanitize_html(dirty: str) -> str:
    """Clean a single HTML fragment against the allow-list."""
    if not dirty:
        return ""
    return nh3.clean(
        dirty,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_URL_SCHEMES,
    )


def sanitize_url(url: str) -> str:
    """
    Keep http(s) URLs and site-relative paths; anything else becomes "".

    Rejects javascript:, data: and other schemes, and protocol-relative
    URLs ("//host", "/\\host") that would leave the site.
    """
    if not url:
        return ""

    candidate = _URL_IGNORED_CHARS.sub("", url)
    if candidate.startswith(("//", "/\\", "\\")):
        return ""

    try:
        parts = urlsplit(candidate)
    except ValueError:
        return ""

    if parts.scheme:
        return url.strip() if parts.scheme.lower() in SAFE_LINK_SCHEMES else ""
    if parts.netloc:
        return ""
    return url.strip()


def _sanitize_string(value: str, key: Optional[str]) -> str:
    if key in URL_KEYS:
        return sanitize_url(value)
    if key in PLAIN_TEXT_KEYS or key in IDENTIFIER_KEYS:
        return value
    # Text without markup is stored as typed so "&" is not entity-escaped
    if "<" not in value:
        return value
    return sanitize_html(value)


def sanitize_recursively(value: Any, key: Optional[str] = None) -> Any:
    """
    Sanitize every string inside a JSON-like structure.

    Dicts and lists are walked, and list items are treated like their
    parent key ("images": [...] holds URLs). Numbers, booleans and None are
    returned as-is.
    """
    if isinstance(value, str):
        return _sanitize_string(value, key)
    if isinstance(value, list):
        return [sanitize_recursively(item, key) for item in value]
    if isinstance(value, dict):
        return {
            item_key: sanitize_recursively(item, item_key)
            for item_key, item in value.items()
        }
    return value
