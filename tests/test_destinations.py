"""Tests for the destinations module."""
import pytest
from werkzeug.security import generate_password_hash

from app.tourbook import auth, create_app
from app.tourbook.db import session_scope
from app.tourbook.models import Base, Permission, Role, User
from app.tourbook.modules.destinations import api as destinations_api
from app.tourbook.modules.destinations.models import Destination
from app.tourbook.modules.destinations.service import delete_destination, get_destination_or_404
from app.tourbook.modules.places.models import Place
from app.tourbook.rbac import PERMISSIONS
from app.tourbook.storage import Storage, StorageError


class FailingStorage(Storage):
    public_base_url = "https://bucket.example.com"

    def __init__(self):
        self.attempts = []

    def delete(self, key):
        self.attempts.append(key)
        raise StorageError(f"Delete failed for {key}: simulated outage")


@pytest.fixture()
def client(tmp_path, monkeypatch):
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

    return app.test_client()


def _login(client):
    r = client.post("/api/auth/sign-in", json={"email": "admin@example.com", "password": "pw"})
    return {"X-CSRF-Token": r.json["data"]["csrfToken"]}


def _category(client, headers, title="Beaches"):
    r = client.post(
        "/api/categories",
        json={
            "title": title,
            "description": "Sun and sea",
            "imageUrl": "https://bucket.example.com/images/cat.jpg",
            "icon": "waves",
            "color": "teal",
        },
        headers=headers,
    )
    assert r.status_code == 201
    return r.json["data"]["id"]


def _destination_payload(category_id, **overrides):
    data = {
        "categoryId": category_id,
        "title": "Goa",
        "description": "Golden beaches and old churches",
        "rating": 4.6,
        "duration": "3-4 days",
        "highlights": ["Baga Beach", "Old Goa"],
        "images": ["https://bucket.example.com/images/goa-1.jpg", "https://bucket.example.com/images/goa-2.jpg"],
    }
    data.update(overrides)
    return data


def _create(client, headers, category_id, **overrides):
    r = client.post("/api/destinations", json=_destination_payload(category_id, **overrides), headers=headers)
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_destination_create(client):
    headers = _login(client)
    category_id = _category(client, headers)
    data = _create(client, headers, category_id)
    assert data["id"].startswith("destination-")
    assert data["categoryId"] == category_id
    assert data["rating"] == 4.6
    assert data["highlights"] == ["Baga Beach", "Old Goa"]


def test_destination_rating_defaults_to_zero(client):
    headers = _login(client)
    category_id = _category(client, headers)
    payload = _destination_payload(category_id)
    payload.pop("rating")
    r = client.post("/api/destinations", json=payload, headers=headers)
    assert r.status_code == 201
    assert r.json["data"]["rating"] == 0


def test_destination_unknown_category_rejected(client):
    headers = _login(client)
    r = client.post("/api/destinations", json=_destination_payload("category-0-missing"), headers=headers)
    assert r.status_code == 400
    assert r.json["error"] == "Invalid category"


@pytest.mark.parametrize(
    "overrides,field,message",
    [
        ({"highlights": []}, "highlights", "At least one highlight required."),
        ({"images": []}, "images", "At least one image required."),
        ({"images": [f"https://bucket.example.com/{i}.jpg" for i in range(6)]}, "images", "Maximum 5 images allowed."),
        ({"rating": 7}, "rating", "Rating must be between 0 and 5."),
        ({"title": "x" * 201}, "title", "Title must be 200 characters or less."),
    ],
)
def test_destination_validation(client, overrides, field, message):
    headers = _login(client)
    category_id = _category(client, headers)
    r = client.post("/api/destinations", json=_destination_payload(category_id, **overrides), headers=headers)
    assert r.status_code == 400
    assert {"field": field, "message": message} in r.json["details"]


def test_destination_list_filters_and_count(client):
    headers = _login(client)
    beaches = _category(client, headers, "Beaches")
    hills = _category(client, headers, "Hills")
    goa = _create(client, headers, beaches)
    _create(client, headers, beaches, title="Gokarna", description="Quiet coves")
    _create(client, headers, hills, title="Manali", description="Snow and pine")

    r = client.get(f"/api/destinations?categoryId={beaches}")
    assert r.status_code == 200
    assert len(r.json["data"]["destinations"]) == 2

    r = client.get("/api/destinations?search=church")
    assert [d["id"] for d in r.json["data"]["destinations"]] == [goa["id"]]

    r = client.get(f"/api/destinations/category/{beaches}/count")
    assert r.json["data"]["count"] == 2
    r = client.get("/api/destinations/category/category-0-missing/count")
    assert r.json["data"]["count"] == 0


def test_destination_update_moves_category(client):
    headers = _login(client)
    beaches = _category(client, headers, "Beaches")
    hills = _category(client, headers, "Hills")
    created = _create(client, headers, beaches)

    r = client.put(f"/api/destinations/{created['id']}", json={"categoryId": hills, "rating": 3}, headers=headers)
    assert r.status_code == 200
    assert r.json["data"]["categoryId"] == hills
    assert r.json["data"]["rating"] == 3

    r = client.put(f"/api/destinations/{created['id']}", json={"categoryId": "category-0-missing"}, headers=headers)
    assert r.status_code == 400


def test_destination_toggle(client):
    headers = _login(client)
    created = _create(client, headers, _category(client, headers))
    r = client.patch(f"/api/destinations/{created['id']}/toggle", headers=headers)
    assert r.status_code == 200
    assert r.json["data"]["enabled"] is False


def test_destination_delete_survives_storage_failure(client, monkeypatch):
    headers = _login(client)
    created = _create(client, headers, _category(client, headers))
    storage = FailingStorage()
    monkeypatch.setattr(destinations_api, "storage_from_config", lambda config: storage)

    r = client.delete(f"/api/destinations/{created['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["data"]["images"] == {"deleted": 0, "failed": 2}
    assert storage.attempts == ["images/goa-1.jpg", "images/goa-2.jpg"]

    assert client.get(f"/api/destinations/{created['id']}").status_code == 404


def test_delete_destination_service_cascades_and_ignores_storage_errors(client):
    headers = _login(client)
    created = _create(client, headers, _category(client, headers))
    r = client.post(
        "/api/places",
        json={
            "destinationId": created["id"],
            "name": "Fort Aguada",
            "description": "Portuguese fort",
            "duration": "2 hours",
            "timeDuration": "Morning",
            "highlights": ["Lighthouse"],
            "images": ["https://bucket.example.com/images/fort.jpg"],
            "location": {"lat": 15.49, "lng": 73.77},
        },
        headers=headers,
    )
    assert r.status_code == 201

    storage = FailingStorage()
    with session_scope(client.application) as s:
        destination = get_destination_or_404(s, created["id"])
        result = delete_destination(s, destination, None, storage)
    assert result == {"deleted": 0, "failed": 3}
    assert "images/fort.jpg" in storage.attempts

    with session_scope(client.application) as s:
        assert s.get(Destination, created["id"]) is None
        assert s.query(Place).count() == 0


def test_destination_update_rejects_null_enabled(client):
    headers = _login(client)
    created = _create(client, headers, _category(client, headers))
    r = client.put(f"/api/destinations/{created['id']}", json={"enabled": None}, headers=headers)
    assert r.status_code == 400
    assert {"field": "enabled", "message": "Enabled must be true or false."} in r.json["details"]
