from __future__ import annotations

from flask import Blueprint, current_app, request

from app.tourbook.api import json_body, ok, parse_bool_arg
from app.tourbook.db import db_session
from app.tourbook.modules.destinations.service import (
    count_destinations_by_category,
    create_destination,
    delete_destination,
    get_destination_or_404,
    list_destinations,
    serialize_destination,
    toggle_destination_enabled,
    update_destination,
)
from app.tourbook.rbac import current_user, require_permission
from app.tourbook.storage import storage_from_config

bp = Blueprint("destinations", __name__)


# ---------- Public ----------
@bp.get("/destinations")
def destinations_list():
    s = db_session()
    destinations = list_destinations(
        s,
        category_id=(request.args.get("categoryId") or "").strip() or None,
        enabled=parse_bool_arg("enabled"),
        search=(request.args.get("search") or "").strip() or None,
    )
    return ok(
        {"destinations": [serialize_destination(d) for d in destinations]},
        "Destinations retrieved successfully",
    )


@bp.get("/destinations/<destination_id>")
def destination_detail(destination_id: str):
    s = db_session()
    destination = get_destination_or_404(s, destination_id)
    return ok(serialize_destination(destination), "Destination retrieved successfully")


@bp.get("/destinations/category/<category_id>/count")
def destinations_count_by_category(category_id: str):
    s = db_session()
    return ok({"count": count_destinations_by_category(s, category_id)}, "Count retrieved successfully")


# ---------- Admin ----------
@bp.post("/destinations")
@require_permission("destinations.edit")
def destination_create():
    s = db_session()
    destination = create_destination(s, json_body(), current_user())
    s.commit()
    return ok(serialize_destination(destination), "Destination created successfully", status=201)


@bp.put("/destinations/<destination_id>")
@require_permission("destinations.edit")
def destination_update(destination_id: str):
    s = db_session()
    destination = get_destination_or_404(s, destination_id)
    update_destination(s, destination, json_body(), current_user())
    s.commit()
    return ok(serialize_destination(destination), "Destination updated successfully")


@bp.delete("/destinations/<destination_id>")
@require_permission("destinations.edit")
def destination_delete(destination_id: str):
    s = db_session()
    destination = get_destination_or_404(s, destination_id)
    cleanup = delete_destination(s, destination, current_user(), storage_from_config(current_app.config))
    return ok({"images": cleanup}, "Destination deleted successfully")


@bp.patch("/destinations/<destination_id>/toggle")
@require_permission("destinations.edit")
def destination_toggle(destination_id: str):
    s = db_session()
    destination = get_destination_or_404(s, destination_id)
    toggle_destination_enabled(s, destination, current_user())
    s.commit()
    return ok(serialize_destination(destination), "Destination status toggled successfully")
