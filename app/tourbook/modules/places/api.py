from __future__ import annotations

from flask import Blueprint, current_app, request

from app.tourbook.api import json_body, ok, parse_bool_arg
from app.tourbook.db import db_session
from app.tourbook.modules.places.service import (
    count_places_by_destination,
    create_place,
    delete_place,
    get_place_or_404,
    list_places,
    serialize_place,
    toggle_place_enabled,
    update_place,
)
from app.tourbook.rbac import current_user, require_permission
from app.tourbook.storage import storage_from_config

bp = Blueprint("places", __name__)


# ---------- Public ----------
@bp.get("/places")
def places_list():
    s = db_session()
    places = list_places(
        s,
        destination_id=(request.args.get("destinationId") or "").strip() or None,
        enabled=parse_bool_arg("enabled"),
    )
    return ok({"places": [serialize_place(p) for p in places]}, "Places retrieved successfully")


@bp.get("/places/<place_id>")
def place_detail(place_id: str):
    s = db_session()
    place = get_place_or_404(s, place_id)
    return ok(serialize_place(place), "Place retrieved successfully")


@bp.get("/places/destination/<destination_id>/count")
def places_count_by_destination(destination_id: str):
    s = db_session()
    return ok({"count": count_places_by_destination(s, destination_id)}, "Count retrieved successfully")


# ---------- Admin ----------
@bp.post("/places")
@require_permission("places.edit")
def place_create():
    s = db_session()
    place = create_place(s, json_body(), current_user())
    s.commit()
    return ok(serialize_place(place), "Place created successfully", status=201)


@bp.put("/places/<place_id>")
@require_permission("places.edit")
def place_update(place_id: str):
    s = db_session()
    place = get_place_or_404(s, place_id)
    update_place(s, place, json_body(), current_user())
    s.commit()
    return ok(serialize_place(place), "Place updated successfully")


@bp.delete("/places/<place_id>")
@require_permission("places.edit")
def place_delete(place_id: str):
    s = db_session()
    place = get_place_or_404(s, place_id)
    cleanup = delete_place(s, place, current_user(), storage_from_config(current_app.config))
    return ok({"images": cleanup}, "Place deleted successfully")


@bp.patch("/places/<place_id>/toggle")
@require_permission("places.edit")
def place_toggle(place_id: str):
    s = db_session()
    place = get_place_or_404(s, place_id)
    toggle_place_enabled(s, place, current_user())
    s.commit()
    return ok(serialize_place(place), "Place status toggled successfully")
