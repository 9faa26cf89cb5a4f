"""
Supabase Storage service for admin uploads (product and banner images).

Uploads are optionally screened by an external malware scanning API
(SCAN_API_URL) before they are written to the storage bucket.
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from supabase import Client

from storefront.config import settings

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "application/pdf")
SCAN_TIMEOUT_SECONDS = 30.0

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class UnsafeUploadError(Exception):
    """Raised when the scanning API flags a file or cannot vouch for it."""


@dataclass
class UploadResult:
    path: str
    url: str


def validate_upload(file_bytes: bytes, content_type: Optional[str]) -> None:
    """
    Raises:
        ValueError: Empty file, file over 5MB, or type not allowed
    """
    if not file_bytes:
        raise ValueError("Missing file")
    if len(file_bytes) > MAX_FILE_SIZE:
        raise ValueError("File size exceeds 5MB limit")
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValueError("Invalid file type. Only images and PDFs allowed.")


def build_storage_path(filename: str, now_ms: Optional[int] = None) -> str:
    """uploads/<epoch ms>-<8 random chars>.<ext> ('dat' when the name has no extension)."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    ext = filename.rsplit(".", 1)[1].lower() if "." in filename else "dat"
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(8))
    return f"uploads/{now_ms}-{suffix}.{ext}"


async def scan_file(
    file_bytes: bytes,
    filename: str,
    content_type: str,
) -> bool:
    """
    Submit a file to the scanning API.

    Returns:
        True when the file is safe or scanning is not configured,
        False when the API reports a threat or answers with an error
    """
    if not settings.SCAN_API_URL:
        logger.warning("No SCAN_API_URL configured; skipping malware scan")
        return True

    headers: Dict[str, str] = {}
    if settings.SCAN_API_KEY:
        headers["x-api-key"] = settings.SCAN_API_KEY

    try:
        async with httpx.AsyncClient(timeout=SCAN_TIMEOUT_SECONDS) as client:
            response = await client.post(
                settings.SCAN_API_URL,
                headers=headers,
                files={"file": (filename, file_bytes, content_type)},
            )
    except httpx.HTTPError as e:
        logger.error(f"Malware scan request failed: {e}")
        return False

    try:
        body: Any = response.json()
    except ValueError:
        body = {}

    if response.status_code >= 400 or (isinstance(body, dict) and body.get("threat_found")):
        logger.warning(f"Scan detected threat or scan API returned error: {body}")
        return False

    return True


async def upload_file(
    supabase_client: Client,
    file_bytes: bytes,
    filename: str,
    content_type: str,
) -> UploadResult:
    """
    Scan and upload a file to the storage bucket.

    Args:
        supabase_client: Service role Supabase client
        file_bytes: Raw file content
        filename: Original filename (used for the extension)
        content_type: MIME type of the file

    Returns:
        UploadResult with the storage path and its public URL

    Raises:
        ValueError: The file fails size/type validation
        UnsafeUploadError: The scanning API rejected the file
        Exception: If the storage upload fails
    """
    validate_upload(file_bytes, content_type)

    if not await scan_file(file_bytes, filename, content_type):
        raise UnsafeUploadError("File failed malware scan")

    storage_path = build_storage_path(filename)
    bucket = supabase_client.storage.from_(settings.SUPABASE_STORAGE_BUCKET)

    logger.info(
        f"Uploading file: filename={filename}, size={len(file_bytes)} bytes, "
        f"content_type={content_type}, storage_path={storage_path}"
    )

    try:
        bucket.upload(
            path=storage_path,
            file=file_bytes,
            file_options={"content-type": content_type}
        )
    except Exception as e:
        logger.error(f"Failed to upload file to storage: {e}", exc_info=True)
        raise

    public_url = bucket.get_public_url(storage_path)
    return UploadResult(path=storage_path, url=str(public_url))
