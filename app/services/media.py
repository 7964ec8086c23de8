"""Upload user images (avatar, cover) to Cloudinary via its signed upload API."""

from __future__ import annotations

import hashlib
import json
import time
from typing import TYPE_CHECKING, Any

import httpx

from app.schemas.upload import MediaUploadResult

if TYPE_CHECKING:
    from app.core.config import Settings

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif"})


class MediaNotConfiguredError(Exception):
    """Raised when an upload is attempted but Cloudinary credentials are missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MediaUploadError(Exception):
    """Raised when the media host is unreachable or rejects the upload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_media_configured(settings: Settings) -> bool:
    if not settings.CLOUDINARY_CLOUD_NAME or not settings.CLOUDINARY_CLOUD_NAME.strip():
        return False
    if not settings.CLOUDINARY_API_KEY or not settings.CLOUDINARY_API_KEY.strip():
        return False
    if settings.CLOUDINARY_API_SECRET is None:
        return False
    return bool(settings.CLOUDINARY_API_SECRET.get_secret_value().strip())


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary signature: SHA-1 of 'k=v' pairs sorted by key, joined by '&', plus the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def is_image(filename: str | None, content_type: str | None) -> bool:
    """True if the content type is image/* or the filename has a known image extension."""
    if content_type and content_type.lower().startswith("image/"):
        return True
    name = (filename or "").lower()
    return any(name.endswith(ext) for ext in ALLOWED_IMAGE_EXTENSIONS)


async def upload_image(
    content: bytes | None,
    filename: str,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> MediaUploadResult | None:
    """
    Upload one image and return its hosted URL.

    Returns None when there is nothing to upload. Raises MediaNotConfiguredError
    if credentials are missing and MediaUploadError on transport or HTTP failure.
    """
    if not content:
        return None
    if not _is_media_configured(settings):
        raise MediaNotConfiguredError(
            "Media host is not configured; set CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, "
            "CLOUDINARY_API_SECRET."
        )
    cloud_name = (settings.CLOUDINARY_CLOUD_NAME or "").strip()
    api_key = (settings.CLOUDINARY_API_KEY or "").strip()
    api_secret = settings.CLOUDINARY_API_SECRET.get_secret_value().strip()
    url = f"{settings.CLOUDINARY_UPLOAD_URL}/{cloud_name}/image/upload"

    params: dict[str, Any] = {"timestamp": int(time.time())}
    data = {
        **{k: str(v) for k, v in params.items()},
        "api_key": api_key,
        "signature": sign_params(params, api_secret),
    }
    files = {"file": (filename or "upload", content)}

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient()
    try:
        resp = await client.post(
            url, data=data, files=files, timeout=settings.MEDIA_UPLOAD_TIMEOUT_SEC
        )
    except httpx.TimeoutException as e:
        raise MediaUploadError("Media host timed out.") from e
    except httpx.HTTPError as e:
        raise MediaUploadError(f"Media host unreachable: {e!s}") from e
    finally:
        if owns_client:
            await client.aclose()

    if resp.status_code == 401:
        raise MediaUploadError("Media host authentication failed (invalid API key or secret).", 401)
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("error", {}).get("message") or resp.text[:500]
        except (json.JSONDecodeError, AttributeError):
            detail = resp.text[:500] if resp.text else "Unknown error"
        raise MediaUploadError(f"Media host returned {resp.status_code}: {detail}", resp.status_code)
    try:
        body = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MediaUploadError("Media host returned an invalid response.") from e
    if not isinstance(body, dict):
        raise MediaUploadError("Media host returned an invalid response.")
    hosted_url = body.get("secure_url") or body.get("url")
    if not hosted_url:
        raise MediaUploadError("Media host response missing URL.")
    return MediaUploadResult(
        url=hosted_url,
        public_id=body.get("public_id") or "",
        size_bytes=body.get("bytes"),
        width=body.get("width"),
        height=body.get("height"),
    )
