from __future__ import annotations

import re
import secrets
import time
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_HTTP_URL_RE = re.compile(r"^https?://.+")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def generate_id(prefix: str) -> str:
    """Opaque row id: ``<prefix>-<epoch ms>-<7 base36 chars>``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds") + "Z"


def is_http_url(value: Any) -> bool:
    if not isinstance(value, str) or not _HTTP_URL_RE.match(value):
        return False
    try:
        return bool(urlparse(value).netloc)
    except ValueError:
        return False


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


class PayloadChecker:
    """
    Collects field errors for a create/update payload.

    With ``partial=True`` (updates) absent keys are skipped; keys that are
    present are validated exactly as on create.
    """

    def __init__(self, payload: dict[str, Any], *, partial: bool = False):
        self.payload = payload
        self.partial = partial
        self.errors: list[dict[str, str]] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append({"field": field, "message": message})

    def _skip(self, field: str) -> bool:
        return self.partial and field not in self.payload

    def text(self, field: str, label: str, *, max_len: int, required: bool = True) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                self.add(field, f"{label} is required.")
            return
        if not isinstance(value, str):
            self.add(field, f"{label} must be a string.")
        elif len(value.strip()) > max_len:
            self.add(field, f"{label} must be {max_len} characters or less.")

    def url(self, field: str, label: str, *, required: bool = True) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if value in (None, ""):
            if required:
                self.add(field, f"{label} is required.")
            return
        if not is_http_url(value):
            self.add(field, f"{label} must be a valid http(s) URL.")

    def email(self, field: str, label: str, *, max_len: int = 255) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if value in (None, ""):
            return
        if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
            self.add(field, f"{label} is invalid.")
        elif len(value.strip()) > max_len:
            self.add(field, f"{label} must be {max_len} characters or less.")

    def number(self, field: str, label: str, *, minimum: float, maximum: float, required: bool = False) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if value is None:
            if required:
                self.add(field, f"{label} is required.")
            return
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self.add(field, f"{label} must be a number.")
        elif not (minimum <= value <= maximum):
            self.add(field, f"{label} must be between {minimum:g} and {maximum:g}.")

    def boolean(self, field: str, label: str) -> None:
        # optional on create too; once sent it must be a real bool (null included)
        if field not in self.payload:
            return
        value = self.payload[field]
        if not isinstance(value, bool):
            self.add(field, f"{label} must be true or false.")

    def string_list(self, field: str, label: str, *, min_items: int = 0, max_items: int | None = None, urls: bool = False) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if value is None:
            value = []
        if not isinstance(value, list):
            self.add(field, f"{label} must be a list.")
            return
        if len(value) < min_items:
            self.add(field, f"At least {min_items} {label.lower()} required." if min_items > 1 else f"At least one {label.lower().rstrip('s')} required.")
        if max_items is not None and len(value) > max_items:
            self.add(field, f"Maximum {max_items} {label.lower()} allowed.")
        for item in value:
            if urls and not is_http_url(item):
                self.add(field, f"{label} must contain valid http(s) URLs.")
                break
            if not urls and (not isinstance(item, str) or not item.strip()):
                self.add(field, f"{label} must contain non-empty strings.")
                break

    def reference(self, field: str, label: str) -> None:
        if self._skip(field):
            return
        value = self.payload.get(field)
        if not isinstance(value, str) or not value.strip():
            self.add(field, f"{label} is required.")
