from __future__ import annotations

from flask import Blueprint, current_app, request

from app.tourbook.api import json_body, ok, parse_bool_arg
from app.tourbook.db import db_session
from app.tourbook.modules.ads.service import (
    create_ad,
    delete_ad,
    get_ad_or_404,
    list_ads,
    serialize_ad,
    toggle_ad_enabled,
    update_ad,
)
from app.tourbook.rbac import current_user, require_permission
from app.tourbook.storage import storage_from_config

bp = Blueprint("ads", __name__)


# ---------- Public ----------
@bp.get("/ads")
def ads_list():
    s = db_session()
    ads = list_ads(
        s,
        place_id=(request.args.get("placeId") or "").strip() or None,
        enabled=parse_bool_arg("enabled"),
    )
    return ok({"ads": [serialize_ad(a) for a in ads]}, "Ads retrieved successfully")


@bp.get("/ads/<ad_id>")
def ad_detail(ad_id: str):
    s = db_session()
    return ok(serialize_ad(get_ad_or_404(s, ad_id)), "Ad retrieved successfully")


# ---------- Admin ----------
@bp.post("/ads")
@require_permission("ads.edit")
def ad_create():
    s = db_session()
    ad = create_ad(s, json_body(), current_user())
    s.commit()
    return ok(serialize_ad(ad), "Ad created successfully", status=201)


@bp.put("/ads/<ad_id>")
@require_permission("ads.edit")
def ad_update(ad_id: str):
    s = db_session()
    ad = get_ad_or_404(s, ad_id)
    update_ad(s, ad, json_body(), current_user())
    s.commit()
    return ok(serialize_ad(ad), "Ad updated successfully")


@bp.delete("/ads/<ad_id>")
@require_permission("ads.edit")
def ad_delete(ad_id: str):
    s = db_session()
    ad = get_ad_or_404(s, ad_id)
    cleanup = delete_ad(s, ad, current_user(), storage_from_config(current_app.config))
    return ok({"images": cleanup}, "Ad deleted successfully")


@bp.patch("/ads/<ad_id>/toggle")
@require_permission("ads.edit")
def ad_toggle(ad_id: str):
    s = db_session()
    ad = get_ad_or_404(s, ad_id)
    toggle_ad_enabled(s, ad, current_user())
    s.commit()
    state = "enabled" if ad.enabled else "disabled"
    return ok(serialize_ad(ad), f"Ad {state} successfully")
