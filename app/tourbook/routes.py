import mimetypes

from flask import Blueprint, abort, current_app, send_file

from app.tourbook.storage import LocalStorage, StorageError, storage_from_config

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancer probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.get("/media/<path:key>")
def media(key: str):
    """Serve uploaded images when running on the local storage backend."""
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        abort(404)
    try:
        fh = storage.open(key)
    except StorageError:
        abort(404)
    return send_file(fh, mimetype=mimetypes.guess_type(key)[0] or "application/octet-stream", max_age=86400)
