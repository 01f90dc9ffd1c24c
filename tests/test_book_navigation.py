"""Tests for the tour book page state and its session-backed endpoints."""
from datetime import datetime

import pytest

from app.tourbook import create_app
from app.tourbook.db import session_scope
from app.tourbook.models import Base
from app.tourbook.modules.book.navigation import (
    NOTICE_INVALID_PAGE,
    NOTICE_PLACE_OUTSIDE_CATEGORY,
    NOTICE_SELECT_CATEGORY,
    NOTICE_SELECT_PLACE,
    TOTAL_PAGES,
    BookNavigator,
    BookState,
    Page,
)
from app.tourbook.modules.categories.models import Category
from app.tourbook.modules.destinations.models import Destination
from app.tourbook.modules.places.models import Place


# ---------- Navigator ----------


def test_places_page_requires_category():
    nav = BookNavigator()
    nav.go_to(Page.CATEGORIES)
    assert nav.go_to(Page.PLACES) is False
    assert nav.state.page_index == Page.CATEGORIES
    assert nav.notices == [NOTICE_SELECT_CATEGORY]


def test_map_page_requires_place():
    nav = BookNavigator(BookState(page_index=Page.PLACES, selected_category="category-1"))
    assert nav.go_to(Page.MAP) is False
    assert nav.state.page_index == Page.PLACES
    assert nav.notices == [NOTICE_SELECT_PLACE]


def test_paginate_is_bounded():
    nav = BookNavigator()
    assert nav.paginate(-1) is False
    assert nav.state.page_index == 0

    nav = BookNavigator(BookState(page_index=Page.MAP, selected_category="c", selected_place="p"))
    assert nav.paginate(1) is False
    assert nav.state.page_index == TOTAL_PAGES - 1
    assert nav.notices == []


def test_paginate_respects_prerequisites():
    nav = BookNavigator(BookState(page_index=Page.CATEGORIES))
    assert nav.paginate(1) is False
    assert nav.state.page_index == Page.CATEGORIES


def test_out_of_range_page_refused():
    nav = BookNavigator()
    assert nav.go_to(7) is False
    assert nav.go_to(-1) is False
    assert nav.state.page_index == 0
    assert nav.notices == [NOTICE_INVALID_PAGE, NOTICE_INVALID_PAGE]


def test_cover_resets_selections_and_categories_clears_place():
    nav = BookNavigator(BookState(page_index=Page.MAP, selected_category="c", selected_place="p"))
    nav.go_to(Page.CATEGORIES)
    assert nav.state.selected_category == "c"
    assert nav.state.selected_place is None

    nav.go_to(Page.COVER)
    assert nav.state.selected_category is None
    assert nav.state.page_index == Page.COVER


def test_direction_tracks_last_flip():
    nav = BookNavigator()
    nav.paginate(1)
    assert nav.state.direction == 1
    nav.paginate(-1)
    assert nav.state.direction == -1


def test_select_flow_and_back():
    notices = []
    nav = BookNavigator(notify=notices.append)
    assert nav.select_place("place-1") is False
    assert notices == [NOTICE_SELECT_CATEGORY]

    assert nav.select_category("category-1") is True
    assert nav.page == Page.PLACES
    assert nav.select_place("place-1") is True
    assert nav.page == Page.MAP
    assert nav.show_navigation is True

    nav.back()
    assert nav.page == Page.PLACES
    assert nav.state.selected_place is None
    nav.back()
    assert nav.page == Page.CATEGORIES
    assert nav.state.selected_category is None


def test_select_place_from_another_category_refused():
    nav = BookNavigator()
    nav.select_category("category-1")
    assert nav.select_place("place-3", "category-3") is False
    assert nav.notices == [NOTICE_PLACE_OUTSIDE_CATEGORY]
    assert nav.page == Page.PLACES
    assert nav.state.selected_place is None

    assert nav.select_place("place-1", "category-1") is True
    assert nav.page == Page.MAP


def test_show_navigation_hidden_on_cover_and_without_prerequisite():
    assert BookNavigator().show_navigation is False
    assert BookNavigator(BookState(page_index=Page.CATEGORIES)).show_navigation is True
    assert BookNavigator(BookState(page_index=Page.PLACES)).show_navigation is False


def test_state_from_dict_tolerates_garbage():
    st = BookState.from_dict({"page_index": "x", "selected_category": ""})
    assert st == BookState()
    assert BookState.from_dict({"page_index": 9}).page_index == 0


# ---------- HTTP ----------


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.chdir(tmp_path)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    now = datetime.utcnow()
    with session_scope(app) as s:
        c = Category(
            id="category-1",
            title="Beaches",
            description="Sea",
            image_url="https://cdn.example.com/c.jpg",
            icon="waves",
            color="teal",
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        hidden = Category(
            id="category-2",
            title="Hidden",
            description="Off",
            image_url="https://cdn.example.com/h.jpg",
            icon="eye-off",
            color="gray",
            enabled=False,
            created_at=now,
            updated_at=now,
        )
        d = Destination(
            id="destination-1",
            category_id="category-1",
            title="Goa",
            description="Beaches",
            rating=4.5,
            duration="3 days",
            highlights=["Baga"],
            images=["https://cdn.example.com/d.jpg"],
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        p = Place(
            id="place-1",
            destination_id="destination-1",
            name="Baga Beach",
            description="Busy beach",
            rating=4.2,
            duration="Half day",
            time_duration="Evening",
            highlights=["Nightlife"],
            images=["https://cdn.example.com/p.jpg"],
            location={"lat": 15.55, "lng": 73.75},
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        hills = Category(
            id="category-3",
            title="Hills",
            description="Cool air",
            image_url="https://cdn.example.com/hills.jpg",
            icon="mountain",
            color="green",
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        manali = Destination(
            id="destination-3",
            category_id="category-3",
            title="Manali",
            description="Valley town",
            rating=4.7,
            duration="4 days",
            highlights=["Solang"],
            images=["https://cdn.example.com/manali.jpg"],
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        rohtang = Place(
            id="place-3",
            destination_id="destination-3",
            name="Rohtang Pass",
            description="High pass",
            rating=4.6,
            duration="Full day",
            time_duration="Morning",
            highlights=["Snow"],
            images=["https://cdn.example.com/rohtang.jpg"],
            location={"lat": 32.37, "lng": 77.25},
            enabled=True,
            created_at=now,
            updated_at=now,
        )
        s.add_all([c, hidden, d, p, hills, manali, rohtang])

    return app.test_client()


def test_book_state_starts_on_cover(client):
    r = client.get("/book/state")
    assert r.status_code == 200
    data = r.json["data"]
    assert data["pageIndex"] == 0
    assert data["page"] == "cover"
    assert data["totalPages"] == 4
    assert data["showNavigation"] is False


def test_book_refused_navigation_returns_notice(client):
    client.post("/book/go-to", json={"pageIndex": 1})
    r = client.post("/book/go-to", json={"pageIndex": 2})
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["message"] == NOTICE_SELECT_CATEGORY
    assert r.json["data"]["pageIndex"] == 1


def test_book_full_walk_persists_in_session(client):
    r = client.post("/book/paginate", json={"direction": 1})
    assert r.json["data"]["page"] == "categories"

    r = client.post("/book/select-category", json={"categoryId": "category-1"})
    assert r.json["data"]["page"] == "places"
    assert r.json["data"]["selectedCategory"] == "category-1"

    r = client.post("/book/select-place", json={"placeId": "place-1"})
    assert r.json["data"]["page"] == "map"

    r = client.get("/book/state")
    assert r.json["data"]["selectedPlace"] == "place-1"

    r = client.post("/book/back")
    assert r.json["data"]["page"] == "places"

    r = client.post("/book/reset")
    assert r.json["data"]["pageIndex"] == 0
    assert r.json["data"]["selectedCategory"] is None


def test_book_select_unknown_or_disabled_category(client):
    assert client.post("/book/select-category", json={"categoryId": "category-9"}).status_code == 404
    assert client.post("/book/select-category", json={"categoryId": "category-2"}).status_code == 404
    assert client.get("/book/state").json["data"]["pageIndex"] == 0


def test_book_bad_input(client):
    r = client.post("/book/paginate", json={"direction": 2})
    assert r.status_code == 400
    r = client.post("/book/go-to", json={"pageIndex": "2"})
    assert r.status_code == 400
    r = client.post("/book/select-place", json={})
    assert r.status_code == 400


def test_book_select_place_outside_selected_category(client):
    client.post("/book/select-category", json={"categoryId": "category-1"})
    r = client.post("/book/select-place", json={"placeId": "place-3"})
    assert r.status_code == 200
    assert r.json["message"] == NOTICE_PLACE_OUTSIDE_CATEGORY
    assert r.json["data"]["page"] == "places"
    assert r.json["data"]["selectedPlace"] is None
