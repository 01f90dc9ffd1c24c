from __future__ import annotations

import http.cookiejar
import json
import mimetypes
import urllib.error
import urllib.parse
import urllib.request
import uuid
from typing import Any


class ApiError(RuntimeError):
    """Non-2xx response from the Tourbook API."""

    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class TourbookClient:
    """
    Thin JSON client for the Tourbook HTTP API.

    Keeps the session cookie between calls and replays the CSRF token handed
    out by sign-in, so admin calls work after `sign_in()`.
    """

    def __init__(self, base_url: str = "http://localhost:5000", *, timeout_seconds: int = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.cookies = http.cookiejar.CookieJar()
        self.csrf_token: str | None = None
        self._opener = urllib.request.build_opener(urllib.request.HTTPCookieProcessor(self.cookies))

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
        data: bytes | None = None,
        content_type: str | None = None,
    ) -> Any:
        """Send a request and return the envelope's `data` (or the whole envelope when it has none)."""
        url = self.base_url + path
        if params:
            query = {k: _param(v) for k, v in params.items() if v is not None}
            if query:
                url += "?" + urllib.parse.urlencode(query)

        if body is not None:
            data = json.dumps(body).encode("utf-8")
            content_type = "application/json"

        req = urllib.request.Request(url, data=data, method=method.upper())
        req.add_header("Accept", "application/json")
        if content_type:
            req.add_header("Content-Type", content_type)
        if self.csrf_token and method.upper() in ("POST", "PUT", "PATCH", "DELETE"):
            req.add_header("X-CSRF-Token", self.csrf_token)

        try:
            with self._opener.open(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            try:
                raw_err = e.read()
            except Exception:
                raw_err = b""
            raise ApiError(e.code, _error_message(raw_err, e.reason)) from e

        if not raw:
            return None
        try:
            envelope = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise ApiError(502, f"Invalid JSON from {path}") from e
        if isinstance(envelope, dict) and "data" in envelope:
            return envelope["data"]
        return envelope

    # Auth

    def sign_in(self, email: str, password: str) -> dict[str, Any]:
        data = self.request("POST", "/api/auth/sign-in", body={"email": email, "password": password})
        self.csrf_token = data.get("csrfToken")
        return data["user"]

    def sign_out(self) -> None:
        self.request("POST", "/api/auth/sign-out")
        self.csrf_token = None

    def get_session(self) -> dict[str, Any]:
        data = self.request("GET", "/api/session")
        self.csrf_token = data.get("csrfToken") or self.csrf_token
        return data["user"]

    # Categories

    def list_categories(self, *, enabled: bool | None = None, search: str | None = None) -> list[dict[str, Any]]:
        data = self.request("GET", "/api/categories", params={"enabled": enabled, "search": search})
        return data["categories"]

    def get_category(self, category_id: str) -> dict[str, Any]:
        return self.request("GET", f"/api/categories/{_quote(category_id)}")

    def create_category(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/api/categories", body=payload)

    def update_category(self, category_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/api/categories/{_quote(category_id)}", body=payload)

    def delete_category(self, category_id: str) -> dict[str, Any]:
        return self.request("DELETE", f"/api/categories/{_quote(category_id)}")

    def toggle_category(self, category_id: str) -> dict[str, Any]:
        return self.request("PATCH", f"/api/categories/{_quote(category_id)}/toggle")

    # Destinations

    def list_destinations(
        self, *, category_id: str | None = None, enabled: bool | None = None, search: str | None = None
    ) -> list[dict[str, Any]]:
        data = self.request(
            "GET",
            "/api/destinations",
            params={"categoryId": category_id, "enabled": enabled, "search": search},
        )
        return data["destinations"]

    def get_destination(self, destination_id: str) -> dict[str, Any]:
        return self.request("GET", f"/api/destinations/{_quote(destination_id)}")

    def count_destinations(self, category_id: str) -> int:
        data = self.request("GET", f"/api/destinations/category/{_quote(category_id)}/count")
        return int(data["count"])

    def create_destination(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/api/destinations", body=payload)

    def update_destination(self, destination_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/api/destinations/{_quote(destination_id)}", body=payload)

    def delete_destination(self, destination_id: str) -> dict[str, Any]:
        return self.request("DELETE", f"/api/destinations/{_quote(destination_id)}")

    def toggle_destination(self, destination_id: str) -> dict[str, Any]:
        return self.request("PATCH", f"/api/destinations/{_quote(destination_id)}/toggle")

    # Places

    def list_places(self, *, destination_id: str | None = None, enabled: bool | None = None) -> list[dict[str, Any]]:
        data = self.request("GET", "/api/places", params={"destinationId": destination_id, "enabled": enabled})
        return data["places"]

    def get_place(self, place_id: str) -> dict[str, Any]:
        return self.request("GET", f"/api/places/{_quote(place_id)}")

    def count_places(self, destination_id: str) -> int:
        data = self.request("GET", f"/api/places/destination/{_quote(destination_id)}/count")
        return int(data["count"])

    def create_place(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/api/places", body=payload)

    def update_place(self, place_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/api/places/{_quote(place_id)}", body=payload)

    def delete_place(self, place_id: str) -> dict[str, Any]:
        return self.request("DELETE", f"/api/places/{_quote(place_id)}")

    def toggle_place(self, place_id: str) -> dict[str, Any]:
        return self.request("PATCH", f"/api/places/{_quote(place_id)}/toggle")

    # Ads

    def list_ads(self, *, place_id: str | None = None, enabled: bool | None = None) -> list[dict[str, Any]]:
        data = self.request("GET", "/api/ads", params={"placeId": place_id, "enabled": enabled})
        return data["ads"]

    def get_ad(self, ad_id: str) -> dict[str, Any]:
        return self.request("GET", f"/api/ads/{_quote(ad_id)}")

    def create_ad(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/api/ads", body=payload)

    def update_ad(self, ad_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("PUT", f"/api/ads/{_quote(ad_id)}", body=payload)

    def delete_ad(self, ad_id: str) -> dict[str, Any]:
        return self.request("DELETE", f"/api/ads/{_quote(ad_id)}")

    def toggle_ad(self, ad_id: str) -> dict[str, Any]:
        return self.request("PATCH", f"/api/ads/{_quote(ad_id)}/toggle")

    # Images

    def upload_image(self, data: bytes, filename: str, content_type: str | None = None) -> dict[str, Any]:
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        boundary = uuid.uuid4().hex
        body = b"".join(
            [
                f"--{boundary}\r\n".encode("ascii"),
                f'Content-Disposition: form-data; name="file"; filename="{filename}"\r\n'.encode("utf-8"),
                f"Content-Type: {content_type}\r\n\r\n".encode("ascii"),
                data,
                f"\r\n--{boundary}--\r\n".encode("ascii"),
            ]
        )
        return self.request(
            "POST",
            "/api/images/upload",
            data=body,
            content_type=f"multipart/form-data; boundary={boundary}",
        )

    def upload_image_from_url(self, url: str, filename: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"url": url}
        if filename:
            payload["filename"] = filename
        return self.request("POST", "/api/images/upload-from-url", body=payload)

    def get_image(self, image_id: str) -> dict[str, Any]:
        return self.request("GET", f"/api/images/{_quote(image_id, safe='/')}")

    def delete_image(self, image_id: str) -> None:
        self.request("DELETE", f"/api/images/{_quote(image_id, safe='/')}")


def _quote(value: str, safe: str = "") -> str:
    return urllib.parse.quote(str(value), safe=safe)


def _param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _error_message(raw: bytes, fallback: str | None) -> str:
    try:
        j = json.loads(raw.decode("utf-8"))
    except Exception:
        return str(fallback or "Request failed")
    if isinstance(j, dict):
        return str(j.get("message") or j.get("error") or fallback or "Request failed")
    return str(fallback or "Request failed")
