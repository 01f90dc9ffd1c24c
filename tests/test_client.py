"""Tests for TourbookClient, routed through the Flask test client instead of a socket."""
import io
import urllib.error
import urllib.parse

import pytest
from werkzeug.security import generate_password_hash

from app.tourbook import auth, create_app
from app.tourbook.client import ApiError, TourbookClient
from app.tourbook.db import session_scope
from app.tourbook.models import Base, Permission, Role, User
from app.tourbook.rbac import PERMISSIONS


class FlaskOpener:
    """Stands in for the urllib opener; the Flask test client keeps the cookies."""

    def __init__(self, flask_client):
        self.flask_client = flask_client
        self.requests = []

    def open(self, req, timeout=None):
        parts = urllib.parse.urlsplit(req.full_url)
        path = parts.path + (f"?{parts.query}" if parts.query else "")
        headers = {k.lower(): v for k, v in req.header_items()}
        content_type = headers.pop("content-type", None)
        self.requests.append((req.get_method(), path, headers))
        r = self.flask_client.open(
            path,
            method=req.get_method(),
            data=req.data,
            content_type=content_type,
            headers={"X-CSRF-Token": headers["x-csrf-token"]} if "x-csrf-token" in headers else {},
        )
        if r.status_code >= 400:
            raise urllib.error.HTTPError(req.full_url, r.status_code, r.status, r.headers, io.BytesIO(r.data))
        return io.BytesIO(r.data)


@pytest.fixture()
def api(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY", "PUBLIC_BUCKET_URL"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.chdir(tmp_path)
    auth._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        r = Role(key="admin", name="Administrator")
        for key, name in PERMISSIONS:
            r.permissions.append(Permission(key=key, name=name))
        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(r)
        s.add_all([r, u])

    c = TourbookClient("http://tourbook.test")
    c._opener = FlaskOpener(app.test_client())
    return c


CATEGORY = {
    "title": "Deserts",
    "description": "Dunes and camels",
    "imageUrl": "https://cdn.example.com/images/desert.jpg",
    "icon": "sun",
    "color": "orange",
}


def test_client_sign_in_keeps_csrf_token(api):
    user = api.sign_in("admin@example.com", "pw")
    assert user["email"] == "admin@example.com"
    assert api.csrf_token

    created = api.create_category(CATEGORY)
    method, path, headers = api._opener.requests[-1]
    assert (method, path) == ("POST", "/api/categories")
    assert headers["x-csrf-token"] == api.csrf_token
    assert created["title"] == "Deserts"


def test_client_crud_round(api):
    api.sign_in("admin@example.com", "pw")
    category = api.create_category(CATEGORY)
    destination = api.create_destination(
        {
            "categoryId": category["id"],
            "title": "Jaisalmer",
            "description": "Golden city",
            "duration": "2 days",
            "highlights": ["Sam dunes"],
            "images": ["https://cdn.example.com/images/jsm.jpg"],
        }
    )
    assert api.count_destinations(category["id"]) == 1
    assert [d["id"] for d in api.list_destinations(category_id=category["id"])] == [destination["id"]]

    toggled = api.toggle_category(category["id"])
    assert toggled["enabled"] is False
    assert api.list_categories(enabled=True) == []

    result = api.delete_category(category["id"])
    assert result["images"]["failed"] == 2


def test_client_raises_api_error_with_envelope_message(api):
    with pytest.raises(ApiError) as exc:
        api.get_category("category-0-missing")
    assert exc.value.status == 404
    assert exc.value.message == "The requested category does not exist"

    api.sign_in("admin@example.com", "pw")
    with pytest.raises(ApiError) as exc:
        api.create_category(dict(CATEGORY, title=""))
    assert exc.value.status == 400
    assert exc.value.message == "Title is required."


def test_client_requires_sign_in_for_admin_calls(api):
    with pytest.raises(ApiError) as exc:
        api.create_category(CATEGORY)
    assert exc.value.status == 401


def test_client_upload_image(api, tmp_path):
    api.sign_in("admin@example.com", "pw")
    image = api.upload_image(b"GIF89a" + b"\x00" * 16, "tiny.gif")
    assert image["id"].endswith(".gif")
    assert (tmp_path / "storage" / image["id"]).exists()

    api.delete_image(image["id"])
    assert not (tmp_path / "storage" / image["id"]).exists()
