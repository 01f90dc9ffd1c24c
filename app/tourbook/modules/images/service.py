from __future__ import annotations

import logging
import secrets
import time
import urllib.error
import urllib.request
from datetime import datetime
from typing import Any

from werkzeug.utils import secure_filename

from app.tourbook.storage import Storage, StorageError
from app.tourbook.utils import isoformat

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif")
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10MB
FETCH_TIMEOUT_SECONDS = 30
VARIANT_NAMES = ("thumbnail", "small", "medium", "large", "original")


class ImageFetchError(RuntimeError):
    pass


def generate_image_key(filename: str) -> str:
    """``images/<epoch ms>-<random>.<ext>``; the extension is taken from the uploaded filename."""
    safe = secure_filename(filename or "")
    ext = safe.rsplit(".", 1)[-1].lower() if "." in safe else "jpg"
    return f"images/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


def build_variants(url: str) -> dict[str, str]:
    # Bucket serves originals only; every variant points at the same object.
    return {name: url for name in VARIANT_NAMES}


def _image_payload(storage: Storage, key: str, filename: str, size: int, uploaded_at: datetime | None) -> dict[str, Any]:
    url = storage.public_url(key)
    return {
        "id": key,
        "url": url,
        "publicUrl": url,
        "filename": filename,
        "size": size,
        "uploadedAt": isoformat(uploaded_at or datetime.utcnow()),
        "variants": build_variants(url),
    }


def validate_image_upload(data: bytes | None, content_type: str | None) -> list[dict[str, str]]:
    errors = []
    if not data:
        errors.append({"field": "file", "message": "Please select a file to upload."})
        return errors
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        errors.append({"field": "file", "message": "Only JPEG, PNG, WebP and GIF images are allowed."})
    if len(data) > MAX_IMAGE_BYTES:
        errors.append({"field": "file", "message": "File size must be less than 10MB."})
    return errors


def upload_image(storage: Storage, data: bytes, filename: str, content_type: str) -> dict[str, Any]:
    """PUT the bytes under a fresh key and return the public image record."""
    key = generate_image_key(filename)
    storage.put_bytes(key, data, content_type=content_type)
    logger.info("Uploaded image key=%s size=%s", key, len(data))
    return _image_payload(storage, key, filename, len(data), None)


def fetch_remote_image(url: str, *, timeout: int = FETCH_TIMEOUT_SECONDS) -> tuple[bytes, str]:
    req = urllib.request.Request(url, method="GET")
    req.add_header("Accept", "image/*")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = resp.read(MAX_IMAGE_BYTES + 1)
            content_type = (resp.headers.get("Content-Type") or "image/jpeg").split(";")[0].strip()
    except urllib.error.HTTPError as e:
        raise ImageFetchError(f"Failed to fetch image from URL: {e.code}") from e
    except (urllib.error.URLError, TimeoutError) as e:
        raise ImageFetchError(f"Failed to fetch image from URL: {e}") from e
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageFetchError("Remote image is larger than 10MB.")
    return data, content_type


def upload_image_from_url(storage: Storage, url: str, filename: str | None = None) -> dict[str, Any]:
    data, content_type = fetch_remote_image(url)
    final_filename = filename or f"image-{int(time.time() * 1000)}.jpg"
    return upload_image(storage, data, final_filename, content_type)


def delete_image(storage: Storage, key: str) -> None:
    storage.delete(key)
    logger.info("Deleted image key=%s", key)


def image_details(storage: Storage, key: str) -> dict[str, Any]:
    info = storage.head(key)
    last_modified = info.last_modified.replace(tzinfo=None) if info.last_modified else None
    return _image_payload(storage, key, key.rsplit("/", 1)[-1], info.size, last_modified)


def delete_images_best_effort(storage: Storage, urls: list[str]) -> dict[str, int]:
    """
    Remove each image from storage, logging failures instead of raising.
    Orphaned blobs are acceptable; a failed cleanup never fails the caller.
    """
    result = {"deleted": 0, "failed": 0}
    for url in urls:
        try:
            key = storage.key_for_url(url)
            storage.delete(key)
            logger.info("Deleted image from storage: %s", key)
            result["deleted"] += 1
        except (StorageError, OSError, ValueError) as e:
            # ValueError: stored URL that urlparse cannot split into a key
            logger.error("Failed to delete image from storage: %s (%s)", url, e)
            result["failed"] += 1
    return result
