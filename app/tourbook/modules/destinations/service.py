from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func

from app.tourbook.audit import record_event
from app.tourbook.errors import BadRequest, NotFound, ValidationError
from app.tourbook.modules.images.service import delete_images_best_effort
from app.tourbook.utils import PayloadChecker, generate_id, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.tourbook.models import User
    from app.tourbook.modules.destinations.models import Destination
    from app.tourbook.storage import Storage


MAX_IMAGES = 5

# payload key -> model attribute
_FIELDS = (
    ("categoryId", "category_id"),
    ("title", "title"),
    ("description", "description"),
    ("rating", "rating"),
    ("duration", "duration"),
    ("highlights", "highlights"),
    ("images", "images"),
    ("enabled", "enabled"),
)


def validate_destination_payload(payload: dict, *, partial: bool = False) -> list[dict[str, str]]:
    """Validate destination creation/update payload. Returns list of errors."""
    c = PayloadChecker(payload, partial=partial)
    c.reference("categoryId", "Category")
    c.text("title", "Title", max_len=200)
    c.text("description", "Description", max_len=500)
    c.number("rating", "Rating", minimum=0, maximum=5)
    c.text("duration", "Duration", max_len=100)
    c.string_list("highlights", "Highlights", min_items=1)
    c.string_list("images", "Images", min_items=1, max_items=MAX_IMAGES, urls=True)
    c.boolean("enabled", "Enabled")
    return c.errors


def _ensure_category(s: "Session", category_id: str) -> None:
    from app.tourbook.modules.categories.models import Category

    if s.get(Category, category_id) is None:
        raise BadRequest(f"Category {category_id} does not exist", error="Invalid category")


def serialize_destination(destination: "Destination") -> dict[str, Any]:
    return {
        "id": destination.id,
        "categoryId": destination.category_id,
        "title": destination.title,
        "description": destination.description,
        "rating": destination.rating,
        "duration": destination.duration,
        "highlights": list(destination.highlights or []),
        "images": list(destination.images or []),
        "enabled": destination.enabled,
        "createdAt": isoformat(destination.created_at),
        "updatedAt": isoformat(destination.updated_at),
    }


def get_destination_or_404(s: "Session", destination_id: str) -> "Destination":
    from app.tourbook.modules.destinations.models import Destination

    destination = s.get(Destination, destination_id)
    if not destination:
        raise NotFound("The requested destination does not exist", error="Destination not found")
    return destination


def list_destinations(
    s: "Session",
    *,
    category_id: str | None = None,
    enabled: bool | None = None,
    search: str | None = None,
) -> list["Destination"]:
    from app.tourbook.modules.destinations.models import Destination

    q = s.query(Destination)
    if category_id:
        q = q.filter(Destination.category_id == category_id)
    if enabled is not None:
        q = q.filter(Destination.enabled == enabled)
    if search:
        like = f"%{search}%"
        q = q.filter((Destination.title.ilike(like)) | (Destination.description.ilike(like)))
    return q.order_by(Destination.created_at.desc()).all()


def count_destinations_by_category(s: "Session", category_id: str) -> int:
    from app.tourbook.modules.destinations.models import Destination

    return int(
        s.query(func.count(Destination.id)).filter(Destination.category_id == category_id).scalar() or 0
    )


def _clean(key: str, value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if key in ("highlights", "images"):
        return [v.strip() for v in value]
    if key == "rating":
        return float(value or 0)
    return value


def create_destination(s: "Session", payload: dict, user: "User | None") -> "Destination":
    """Create a new destination under an existing category."""
    from app.tourbook.modules.destinations.models import Destination

    errors = validate_destination_payload(payload)
    if errors:
        raise ValidationError(errors)
    _ensure_category(s, payload["categoryId"].strip())

    now = datetime.utcnow()
    destination = Destination(
        id=generate_id("destination"),
        category_id=payload["categoryId"].strip(),
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        rating=float(payload.get("rating") or 0),
        duration=payload["duration"].strip(),
        highlights=_clean("highlights", payload["highlights"]),
        images=_clean("images", payload["images"]),
        enabled=payload.get("enabled", True),
        created_at=now,
        updated_at=now,
    )
    s.add(destination)
    s.flush()

    record_event(
        s,
        actor=user,
        action="destination.create",
        entity_type="Destination",
        entity_id=destination.id,
        metadata={"title": destination.title, "category_id": destination.category_id},
    )
    return destination


def update_destination(s: "Session", destination: "Destination", payload: dict, user: "User | None") -> "Destination":
    errors = validate_destination_payload(payload, partial=True)
    if errors:
        raise ValidationError(errors)
    if "categoryId" in payload:
        _ensure_category(s, payload["categoryId"].strip())

    changes = {}
    for key, attr in _FIELDS:
        if key not in payload:
            continue
        new = _clean(key, payload[key])
        old = getattr(destination, attr)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(destination, attr, new)

    destination.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="destination.edit",
        entity_type="Destination",
        entity_id=destination.id,
        metadata={"title": destination.title, "changes": changes},
    )
    return destination


def toggle_destination_enabled(s: "Session", destination: "Destination", user: "User | None") -> "Destination":
    destination.enabled = not destination.enabled
    destination.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="destination.toggle",
        entity_type="Destination",
        entity_id=destination.id,
        metadata={"enabled": destination.enabled},
    )
    return destination


def delete_destination(s: "Session", destination: "Destination", user: "User | None", storage: "Storage") -> dict[str, int]:
    """
    Delete the destination row (and its places/ads), commit, then remove the
    images from storage. The row stays deleted even if storage cleanup fails.
    """
    urls = destination.image_urls()
    record_event(
        s,
        actor=user,
        action="destination.delete",
        entity_type="Destination",
        entity_id=destination.id,
        metadata={"title": destination.title, "images": len(urls)},
    )
    s.delete(destination)
    s.commit()
    return delete_images_best_effort(storage, urls)
