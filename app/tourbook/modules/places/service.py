from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.tourbook.audit import record_event
from app.tourbook.errors import BadRequest, NotFound, ValidationError
from app.tourbook.modules.images.service import delete_images_best_effort
from app.tourbook.utils import PayloadChecker, clean_str, generate_id, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.tourbook.models import User
    from app.tourbook.modules.places.models import Place
    from app.tourbook.storage import Storage


MAX_IMAGES = 3

_FIELDS = (
    ("destinationId", "destination_id"),
    ("name", "name"),
    ("description", "description"),
    ("rating", "rating"),
    ("duration", "duration"),
    ("timeDuration", "time_duration"),
    ("highlights", "highlights"),
    ("images", "images"),
    ("location", "location"),
    ("bestTime", "best_time"),
    ("travelTime", "travel_time"),
    ("idealFor", "ideal_for"),
    ("enabled", "enabled"),
)
_OPTIONAL_TEXT = ("bestTime", "travelTime", "idealFor")


def _check_location(c: PayloadChecker) -> None:
    if c.partial and "location" not in c.payload:
        return
    loc = c.payload.get("location")
    if not isinstance(loc, dict):
        c.add("location", "Location is required.")
        return
    lat, lng = loc.get("lat"), loc.get("lng")
    for key, value, bound in (("lat", lat, 90), ("lng", lng, 180)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            c.add("location", f"Location {key} must be a number.")
        elif not (-bound <= value <= bound):
            c.add("location", f"Location {key} must be between -{bound} and {bound}.")


def validate_place_payload(payload: dict, *, partial: bool = False) -> list[dict[str, str]]:
    """Validate place creation/update payload. Returns list of errors."""
    c = PayloadChecker(payload, partial=partial)
    c.reference("destinationId", "Destination")
    c.text("name", "Name", max_len=200)
    c.text("description", "Description", max_len=500)
    c.number("rating", "Rating", minimum=0, maximum=5)
    c.text("duration", "Duration", max_len=100)
    c.text("timeDuration", "Time duration", max_len=100)
    c.string_list("highlights", "Highlights", min_items=1)
    c.string_list("images", "Images", min_items=1, max_items=MAX_IMAGES, urls=True)
    _check_location(c)
    c.text("bestTime", "Best time", max_len=200, required=False)
    c.text("travelTime", "Travel time", max_len=200, required=False)
    c.text("idealFor", "Ideal for", max_len=300, required=False)
    c.boolean("enabled", "Enabled")
    return c.errors


def _ensure_destination(s: "Session", destination_id: str) -> None:
    from app.tourbook.modules.destinations.models import Destination

    if s.get(Destination, destination_id) is None:
        raise BadRequest(f"Destination {destination_id} does not exist", error="Invalid destination")


def _clean(key: str, value: Any) -> Any:
    if key in _OPTIONAL_TEXT:
        return clean_str(value)
    if isinstance(value, str):
        return value.strip()
    if key in ("highlights", "images"):
        return [v.strip() for v in value]
    if key == "rating":
        return float(value or 0)
    if key == "location":
        return {"lat": float(value["lat"]), "lng": float(value["lng"])}
    return value


def serialize_place(place: "Place", *, include_ad: bool = True) -> dict[str, Any]:
    from app.tourbook.modules.ads.service import serialize_ad

    data = {
        "id": place.id,
        "destinationId": place.destination_id,
        "name": place.name,
        "description": place.description,
        "rating": place.rating,
        "duration": place.duration,
        "timeDuration": place.time_duration,
        "highlights": list(place.highlights or []),
        "images": list(place.images or []),
        "location": dict(place.location or {}),
        "bestTime": place.best_time,
        "travelTime": place.travel_time,
        "idealFor": place.ideal_for,
        "enabled": place.enabled,
        "createdAt": isoformat(place.created_at),
        "updatedAt": isoformat(place.updated_at),
    }
    if include_ad and place.ad is not None and place.ad.enabled:
        data["ad"] = serialize_ad(place.ad, include_place=False)
    return data


def get_place_or_404(s: "Session", place_id: str) -> "Place":
    from app.tourbook.modules.places.models import Place

    place = s.get(Place, place_id)
    if not place:
        raise NotFound("The requested place does not exist", error="Place not found")
    return place


def list_places(s: "Session", *, destination_id: str | None = None, enabled: bool | None = None) -> list["Place"]:
    from app.tourbook.modules.places.models import Place

    q = s.query(Place)
    if destination_id:
        q = q.filter(Place.destination_id == destination_id)
    if enabled is not None:
        q = q.filter(Place.enabled == enabled)
    return q.order_by(Place.created_at.desc()).all()


def count_places_by_destination(s: "Session", destination_id: str) -> int:
    from app.tourbook.modules.places.models import Place

    return int(s.query(func.count(Place.id)).filter(Place.destination_id == destination_id).scalar() or 0)


def create_place(s: "Session", payload: dict, user: "User | None") -> "Place":
    """Create a new place under an existing destination."""
    from app.tourbook.modules.places.models import Place

    errors = validate_place_payload(payload)
    if errors:
        raise ValidationError(errors)
    _ensure_destination(s, payload["destinationId"].strip())

    now = datetime.utcnow()
    place = Place(
        id=generate_id("place"),
        destination_id=payload["destinationId"].strip(),
        name=payload["name"].strip(),
        description=payload["description"].strip(),
        rating=float(payload.get("rating") or 0),
        duration=payload["duration"].strip(),
        time_duration=payload["timeDuration"].strip(),
        highlights=_clean("highlights", payload["highlights"]),
        images=_clean("images", payload["images"]),
        location=_clean("location", payload["location"]),
        best_time=clean_str(payload.get("bestTime")),
        travel_time=clean_str(payload.get("travelTime")),
        ideal_for=clean_str(payload.get("idealFor")),
        enabled=payload.get("enabled", True),
        created_at=now,
        updated_at=now,
    )
    s.add(place)
    s.flush()

    record_event(
        s,
        actor=user,
        action="place.create",
        entity_type="Place",
        entity_id=place.id,
        metadata={"name": place.name, "destination_id": place.destination_id},
    )
    return place


def update_place(s: "Session", place: "Place", payload: dict, user: "User | None") -> "Place":
    errors = validate_place_payload(payload, partial=True)
    if errors:
        raise ValidationError(errors)
    if "destinationId" in payload:
        _ensure_destination(s, payload["destinationId"].strip())

    changes = {}
    for key, attr in _FIELDS:
        if key not in payload:
            continue
        new = _clean(key, payload[key])
        old = getattr(place, attr)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(place, attr, new)

    place.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="place.edit",
        entity_type="Place",
        entity_id=place.id,
        metadata={"name": place.name, "changes": changes},
    )
    return place


def toggle_place_enabled(s: "Session", place: "Place", user: "User | None") -> "Place":
    place.enabled = not place.enabled
    place.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="place.toggle",
        entity_type="Place",
        entity_id=place.id,
        metadata={"enabled": place.enabled},
    )
    return place


def delete_place(s: "Session", place: "Place", user: "User | None", storage: "Storage") -> dict[str, int]:
    """Delete the place (and its ad), commit, then best-effort image cleanup."""
    urls = place.image_urls()
    record_event(
        s,
        actor=user,
        action="place.delete",
        entity_type="Place",
        entity_id=place.id,
        metadata={"name": place.name, "images": len(urls)},
    )
    s.delete(place)
    s.commit()
    return delete_images_best_effort(storage, urls)
