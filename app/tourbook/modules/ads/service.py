from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.tourbook.audit import record_event
from app.tourbook.errors import BadRequest, NotFound, ValidationError
from app.tourbook.modules.images.service import delete_images_best_effort
from app.tourbook.utils import PayloadChecker, clean_str, generate_id, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.tourbook.models import User
    from app.tourbook.modules.ads.models import Ad
    from app.tourbook.storage import Storage


MAX_IMAGES = 5
DEFAULT_RATING = 4.5

_FIELDS = (
    ("placeId", "place_id"),
    ("title", "title"),
    ("description", "description"),
    ("images", "images"),
    ("poster", "poster"),
    ("rating", "rating"),
    ("phone", "phone"),
    ("whatsapp", "whatsapp"),
    ("email", "email"),
    ("link", "link"),
    ("bookingLink", "booking_link"),
    ("enabled", "enabled"),
)
_OPTIONAL_TEXT = ("poster", "phone", "whatsapp", "email", "bookingLink")


def validate_ad_payload(payload: dict, *, partial: bool = False) -> list[dict[str, str]]:
    """Validate ad creation/update payload. Returns list of errors."""
    c = PayloadChecker(payload, partial=partial)
    if partial and not any(key in payload for key, _ in _FIELDS):
        c.add("", "At least one field must be provided for update.")
        return c.errors
    c.reference("placeId", "Place")
    c.text("title", "Title", max_len=255)
    c.text("description", "Description", max_len=600)
    c.string_list("images", "Images", min_items=1, max_items=MAX_IMAGES, urls=True)
    c.url("poster", "Poster", required=False)
    c.number("rating", "Rating", minimum=0, maximum=5)
    c.text("phone", "Phone", max_len=50, required=False)
    c.text("whatsapp", "WhatsApp", max_len=50, required=False)
    c.email("email", "Email")
    c.url("link", "Link")
    c.url("bookingLink", "Booking link", required=False)
    c.boolean("enabled", "Enabled")
    return c.errors


def _ensure_place(s: "Session", place_id: str) -> None:
    from app.tourbook.modules.places.models import Place

    if s.get(Place, place_id) is None:
        raise BadRequest(f"Place {place_id} does not exist", error="Invalid place")


def place_has_ad(s: "Session", place_id: str, *, exclude_ad_id: str | None = None) -> bool:
    from app.tourbook.modules.ads.models import Ad

    q = s.query(Ad.id).filter(Ad.place_id == place_id)
    if exclude_ad_id:
        q = q.filter(Ad.id != exclude_ad_id)
    return q.first() is not None


def _clean(key: str, value: Any) -> Any:
    if key in _OPTIONAL_TEXT:
        return clean_str(value)
    if isinstance(value, str):
        return value.strip()
    if key == "images":
        return [v.strip() for v in value]
    if key == "rating":
        return float(DEFAULT_RATING if value is None else value)
    return value


def serialize_ad(ad: "Ad", *, include_place: bool = True) -> dict[str, Any]:
    data = {
        "id": ad.id,
        "placeId": ad.place_id,
        "title": ad.title,
        "description": ad.description,
        "images": list(ad.images or []),
        "poster": ad.poster,
        "rating": ad.rating,
        "phone": ad.phone,
        "whatsapp": ad.whatsapp,
        "email": ad.email,
        "link": ad.link,
        "bookingLink": ad.booking_link,
        "enabled": ad.enabled,
        "createdAt": isoformat(ad.created_at),
        "updatedAt": isoformat(ad.updated_at),
    }
    if include_place:
        data["placeName"] = ad.place.name if ad.place is not None else None
    return data


def get_ad_or_404(s: "Session", ad_id: str) -> "Ad":
    from app.tourbook.modules.ads.models import Ad

    ad = s.get(Ad, ad_id)
    if not ad:
        raise NotFound("The requested ad does not exist", error="Ad not found")
    return ad


def list_ads(s: "Session", *, place_id: str | None = None, enabled: bool | None = None) -> list["Ad"]:
    from app.tourbook.modules.ads.models import Ad

    q = s.query(Ad)
    if place_id:
        q = q.filter(Ad.place_id == place_id)
    if enabled is not None:
        q = q.filter(Ad.enabled == enabled)
    return q.order_by(Ad.created_at.asc()).all()


def create_ad(s: "Session", payload: dict, user: "User | None") -> "Ad":
    """Create an ad. A place can carry at most one ad."""
    from app.tourbook.modules.ads.models import Ad

    errors = validate_ad_payload(payload)
    if errors:
        raise ValidationError(errors)
    place_id = payload["placeId"].strip()
    _ensure_place(s, place_id)
    if place_has_ad(s, place_id):
        raise BadRequest(
            "This place already has an ad. Only one ad per place is allowed.",
            error="Place already has an ad",
        )

    now = datetime.utcnow()
    ad = Ad(
        id=generate_id("ad"),
        place_id=place_id,
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        images=_clean("images", payload["images"]),
        poster=clean_str(payload.get("poster")),
        rating=_clean("rating", payload.get("rating")),
        phone=clean_str(payload.get("phone")),
        whatsapp=clean_str(payload.get("whatsapp")),
        email=clean_str(payload.get("email")),
        link=payload["link"].strip(),
        booking_link=clean_str(payload.get("bookingLink")),
        enabled=payload.get("enabled", True),
        created_at=now,
        updated_at=now,
    )
    s.add(ad)
    s.flush()

    record_event(
        s,
        actor=user,
        action="ad.create",
        entity_type="Ad",
        entity_id=ad.id,
        metadata={"title": ad.title, "place_id": ad.place_id},
    )
    return ad


def update_ad(s: "Session", ad: "Ad", payload: dict, user: "User | None") -> "Ad":
    errors = validate_ad_payload(payload, partial=True)
    if errors:
        raise ValidationError(errors)
    if "placeId" in payload:
        place_id = payload["placeId"].strip()
        _ensure_place(s, place_id)
        if place_has_ad(s, place_id, exclude_ad_id=ad.id):
            raise BadRequest(
                "The selected place already has an ad. Only one ad per place is allowed.",
                error="Place already has an ad",
            )

    changes = {}
    for key, attr in _FIELDS:
        if key not in payload:
            continue
        new = _clean(key, payload[key])
        old = getattr(ad, attr)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(ad, attr, new)
    if "placeId" in changes:
        from app.tourbook.modules.places.models import Place

        ad.place = s.get(Place, ad.place_id)

    ad.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="ad.edit",
        entity_type="Ad",
        entity_id=ad.id,
        metadata={"title": ad.title, "changes": changes},
    )
    return ad


def toggle_ad_enabled(s: "Session", ad: "Ad", user: "User | None") -> "Ad":
    ad.enabled = not ad.enabled
    ad.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="ad.toggle",
        entity_type="Ad",
        entity_id=ad.id,
        metadata={"enabled": ad.enabled},
    )
    return ad


def delete_ad(s: "Session", ad: "Ad", user: "User | None", storage: "Storage") -> dict[str, int]:
    urls = ad.image_urls()
    record_event(
        s,
        actor=user,
        action="ad.delete",
        entity_type="Ad",
        entity_id=ad.id,
        metadata={"title": ad.title, "images": len(urls)},
    )
    s.delete(ad)
    s.commit()
    return delete_images_best_effort(storage, urls)
