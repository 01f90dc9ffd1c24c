from __future__ import annotations

from flask import Blueprint, current_app, request

from app.tourbook.api import json_body, ok, parse_bool_arg
from app.tourbook.db import db_session
from app.tourbook.modules.categories.service import (
    create_category,
    delete_category,
    get_category_or_404,
    list_categories,
    serialize_category,
    toggle_category_enabled,
    update_category,
)
from app.tourbook.rbac import current_user, require_permission
from app.tourbook.storage import storage_from_config

bp = Blueprint("categories", __name__)


# ---------- Public ----------
@bp.get("/categories")
def categories_list():
    s = db_session()
    categories = list_categories(
        s,
        enabled=parse_bool_arg("enabled"),
        search=(request.args.get("search") or "").strip() or None,
    )
    return ok(
        {"categories": [serialize_category(c) for c in categories]},
        "Categories retrieved successfully",
    )


@bp.get("/categories/<category_id>")
def category_detail(category_id: str):
    s = db_session()
    category = get_category_or_404(s, category_id)
    return ok(serialize_category(category), "Category retrieved successfully")


# ---------- Admin ----------
@bp.post("/categories")
@require_permission("categories.edit")
def category_create():
    s = db_session()
    category = create_category(s, json_body(), current_user())
    s.commit()
    return ok(serialize_category(category), "Category created successfully", status=201)


@bp.put("/categories/<category_id>")
@require_permission("categories.edit")
def category_update(category_id: str):
    s = db_session()
    category = get_category_or_404(s, category_id)
    update_category(s, category, json_body(), current_user())
    s.commit()
    return ok(serialize_category(category), "Category updated successfully")


@bp.delete("/categories/<category_id>")
@require_permission("categories.edit")
def category_delete(category_id: str):
    s = db_session()
    category = get_category_or_404(s, category_id)
    cleanup = delete_category(s, category, current_user(), storage_from_config(current_app.config))
    return ok({"images": cleanup}, "Category deleted successfully")


@bp.patch("/categories/<category_id>/toggle")
@require_permission("categories.edit")
def category_toggle(category_id: str):
    s = db_session()
    category = get_category_or_404(s, category_id)
    toggle_category_enabled(s, category, current_user())
    s.commit()
    state = "enabled" if category.enabled else "disabled"
    return ok(serialize_category(category), f"Category {state} successfully")
