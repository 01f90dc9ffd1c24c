from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.tourbook.audit import record_event
from app.tourbook.errors import NotFound, ValidationError
from app.tourbook.modules.images.service import delete_images_best_effort
from app.tourbook.utils import PayloadChecker, clean_str, generate_id, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.tourbook.models import User
    from app.tourbook.modules.categories.models import Category
    from app.tourbook.storage import Storage


EDITABLE_FIELDS = ("title", "description", "imageUrl", "icon", "color", "enabled")


def validate_category_payload(payload: dict, *, partial: bool = False) -> list[dict[str, str]]:
    """Validate category creation/update payload. Returns list of errors."""
    c = PayloadChecker(payload, partial=partial)
    c.text("title", "Title", max_len=100)
    c.text("description", "Description", max_len=300)
    c.url("imageUrl", "Image URL")
    c.text("icon", "Icon", max_len=50)
    c.text("color", "Color", max_len=100)
    c.boolean("enabled", "Enabled")
    return c.errors


def serialize_category(category: "Category") -> dict[str, Any]:
    return {
        "id": category.id,
        "title": category.title,
        "description": category.description,
        "imageUrl": category.image_url,
        "icon": category.icon,
        "color": category.color,
        "enabled": category.enabled,
        "createdAt": isoformat(category.created_at),
        "updatedAt": isoformat(category.updated_at),
    }


def get_category_or_404(s: "Session", category_id: str) -> "Category":
    from app.tourbook.modules.categories.models import Category

    category = s.get(Category, category_id)
    if not category:
        raise NotFound("The requested category does not exist", error="Category not found")
    return category


def list_categories(s: "Session", *, enabled: bool | None = None, search: str | None = None) -> list["Category"]:
    from app.tourbook.modules.categories.models import Category

    q = s.query(Category)
    if enabled is not None:
        q = q.filter(Category.enabled == enabled)
    if search:
        like = f"%{search}%"
        q = q.filter((Category.title.ilike(like)) | (Category.description.ilike(like)))
    return q.order_by(Category.created_at.desc()).all()


def create_category(s: "Session", payload: dict, user: "User | None") -> "Category":
    """Create a new category."""
    from app.tourbook.modules.categories.models import Category

    errors = validate_category_payload(payload)
    if errors:
        raise ValidationError(errors)

    now = datetime.utcnow()
    category = Category(
        id=generate_id("category"),
        title=payload["title"].strip(),
        description=payload["description"].strip(),
        image_url=payload["imageUrl"].strip(),
        icon=payload["icon"].strip(),
        color=payload["color"].strip(),
        enabled=payload.get("enabled", True),
        created_at=now,
        updated_at=now,
    )
    s.add(category)
    s.flush()

    record_event(
        s,
        actor=user,
        action="category.create",
        entity_type="Category",
        entity_id=category.id,
        metadata={"title": category.title},
    )
    return category


def update_category(s: "Session", category: "Category", payload: dict, user: "User | None") -> "Category":
    """Apply a partial update; only keys present in the payload change."""
    errors = validate_category_payload(payload, partial=True)
    if errors:
        raise ValidationError(errors)

    changes = {}
    for key, attr in (("title", "title"), ("description", "description"), ("imageUrl", "image_url"), ("icon", "icon"), ("color", "color")):
        if key not in payload:
            continue
        new = clean_str(payload[key])
        old = getattr(category, attr)
        if new != old:
            changes[key] = {"old": old, "new": new}
            setattr(category, attr, new)
    if "enabled" in payload and payload["enabled"] != category.enabled:
        changes["enabled"] = {"old": category.enabled, "new": payload["enabled"]}
        category.enabled = payload["enabled"]

    category.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="category.edit",
        entity_type="Category",
        entity_id=category.id,
        metadata={"title": category.title, "changes": changes},
    )
    return category


def toggle_category_enabled(s: "Session", category: "Category", user: "User | None") -> "Category":
    category.enabled = not category.enabled
    category.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="category.toggle",
        entity_type="Category",
        entity_id=category.id,
        metadata={"enabled": category.enabled},
    )
    return category


def delete_category(s: "Session", category: "Category", user: "User | None", storage: "Storage") -> dict[str, int]:
    """
    Delete the category (cascading to its destinations, places and ads), commit,
    then clean up every image those rows owned. Image failures are only logged.
    """
    urls = category.image_urls()
    record_event(
        s,
        actor=user,
        action="category.delete",
        entity_type="Category",
        entity_id=category.id,
        metadata={"title": category.title, "images": len(urls)},
    )
    s.delete(category)
    s.commit()
    return delete_images_best_effort(storage, urls)
