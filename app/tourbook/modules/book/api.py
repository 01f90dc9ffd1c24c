from __future__ import annotations

from flask import Blueprint, session

from app.tourbook.api import json_body, ok
from app.tourbook.db import db_session
from app.tourbook.errors import NotFound, ValidationError
from app.tourbook.modules.book.navigation import BookNavigator, BookState
from app.tourbook.modules.categories.service import get_category_or_404
from app.tourbook.modules.places.service import get_place_or_404

bp = Blueprint("book", __name__)

SESSION_KEY = "book"


def _load() -> BookNavigator:
    return BookNavigator(BookState.from_dict(session.get(SESSION_KEY)))


def _respond(nav: BookNavigator):
    session[SESSION_KEY] = nav.state.to_dict()
    # Refused moves are not errors: unchanged state plus a toast message.
    message = nav.notices[-1] if nav.notices else None
    return ok(nav.to_dict(), message)


def _int_field(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError([{"field": key, "message": f"{key} must be an integer."}])
    return value


def _str_field(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError([{"field": key, "message": f"{key} is required."}])
    return value.strip()


@bp.get("/state")
def book_state():
    return _respond(_load())


@bp.post("/go-to")
def book_go_to():
    nav = _load()
    nav.go_to(_int_field(json_body(), "pageIndex"))
    return _respond(nav)


@bp.post("/paginate")
def book_paginate():
    direction = _int_field(json_body(), "direction")
    if direction not in (1, -1):
        raise ValidationError([{"field": "direction", "message": "direction must be 1 or -1."}])
    nav = _load()
    nav.paginate(direction)
    return _respond(nav)


@bp.post("/select-category")
def book_select_category():
    category_id = _str_field(json_body(), "categoryId")
    category = get_category_or_404(db_session(), category_id)
    if not category.enabled:
        raise NotFound("The requested category is not available", error="Category not found")
    nav = _load()
    nav.select_category(category.id)
    return _respond(nav)


@bp.post("/select-place")
def book_select_place():
    place_id = _str_field(json_body(), "placeId")
    place = get_place_or_404(db_session(), place_id)
    if not place.enabled:
        raise NotFound("The requested place is not available", error="Place not found")
    nav = _load()
    nav.select_place(place.id, place.destination.category_id)
    return _respond(nav)


@bp.post("/back")
def book_back():
    nav = _load()
    nav.back()
    return _respond(nav)


@bp.post("/reset")
def book_reset():
    nav = _load()
    nav.reset()
    return _respond(nav)
