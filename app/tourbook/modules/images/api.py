from __future__ import annotations

from flask import Blueprint, current_app, request

from app.tourbook.api import json_body, ok
from app.tourbook.errors import ApiError, BadRequest, NotFound, ValidationError
from app.tourbook.modules.images.service import (
    ImageFetchError,
    delete_image,
    image_details,
    upload_image,
    upload_image_from_url,
    validate_image_upload,
)
from app.tourbook.rbac import require_permission
from app.tourbook.storage import StorageError, storage_from_config
from app.tourbook.utils import is_http_url

bp = Blueprint("images", __name__)


class UploadFailed(ApiError):
    status_code = 500
    error = "Upload failed"


@bp.post("/images/upload")
@require_permission("images.upload")
def image_upload():
    f = request.files.get("file")
    if not f:
        raise BadRequest("Please select a file to upload", error="No file provided")
    data = f.read()
    content_type = f.mimetype or ""
    errors = validate_image_upload(data, content_type)
    if errors:
        raise ValidationError(errors)

    storage = storage_from_config(current_app.config)
    try:
        result = upload_image(storage, data, f.filename or "image.jpg", content_type)
    except StorageError as e:
        current_app.logger.error("Image upload error: %s", e)
        raise UploadFailed("Failed to upload image") from e
    return ok(result, "Image uploaded successfully")


@bp.post("/images/upload-from-url")
@require_permission("images.upload")
def image_upload_from_url():
    payload = json_body()
    url = payload.get("url") or ""
    filename = payload.get("filename") or ""
    if not isinstance(url, str) or not isinstance(filename, str):
        raise BadRequest("Image URL and filename must be strings", error="Invalid input")
    url = url.strip()
    if not url:
        raise BadRequest("Please provide an image URL", error="No URL provided")
    if not is_http_url(url):
        raise BadRequest("Please provide a valid image URL", error="Invalid URL")

    storage = storage_from_config(current_app.config)
    try:
        result = upload_image_from_url(storage, url, filename.strip() or None)
    except ImageFetchError as e:
        raise BadRequest(str(e), error="Upload failed") from e
    except StorageError as e:
        current_app.logger.error("Image upload from URL error: %s", e)
        raise UploadFailed("Failed to upload image from URL") from e
    return ok(result, "Image uploaded successfully from URL")


@bp.get("/images/<path:image_id>")
@require_permission("images.upload")
def image_get(image_id: str):
    storage = storage_from_config(current_app.config)
    try:
        result = image_details(storage, image_id)
    except StorageError as e:
        raise NotFound(str(e), error="Image not found") from e
    return ok(result, "Image details retrieved successfully")


@bp.delete("/images/<path:image_id>")
@require_permission("images.delete")
def image_delete(image_id: str):
    storage = storage_from_config(current_app.config)
    try:
        delete_image(storage, image_id)
    except StorageError as e:
        current_app.logger.error("Image deletion error: %s", e)
        raise ApiError(str(e), error="Deletion failed") from e
    return ok(message="Image deleted successfully")
