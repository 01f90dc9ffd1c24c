"""
JSON envelope helpers shared by every API blueprint.

All responses follow ``{success, message?, error?, data?}``; validation
failures additionally carry ``details``.
"""
from __future__ import annotations

from typing import Any

from flask import Response, jsonify, request

from app.tourbook.errors import ApiError, BadRequest


def ok(data: Any = None, message: str | None = None, status: int = 200) -> tuple[Response, int]:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def fail(error: str, message: str | None = None, status: int = 400, details: list[Any] | None = None) -> tuple[Response, int]:
    body: dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    if details:
        body["details"] = details
    return jsonify(body), status


def error_response(e: ApiError) -> tuple[Response, int]:
    return fail(e.error, e.message, e.status_code, e.details)


def json_body() -> dict[str, Any]:
    """Parsed JSON object body, or a 400 if the body is missing or not an object."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object.", error="Invalid JSON body")
    return payload


def parse_bool_arg(name: str) -> bool | None:
    raw = (request.args.get(name) or "").strip().lower()
    if raw in ("true", "1", "yes"):
        return True
    if raw in ("false", "0", "no"):
        return False
    return None


def is_api_request() -> bool:
    return request.path.startswith(("/api/", "/book/"))
