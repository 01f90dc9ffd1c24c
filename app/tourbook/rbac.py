from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g

from app.tourbook.errors import Forbidden, Unauthorized
from app.tourbook.models import User

# Seeded onto the "admin" role by scripts/init_db.py.
PERMISSIONS: tuple[tuple[str, str], ...] = (
    ("categories.edit", "Categories: create, edit, delete"),
    ("destinations.edit", "Destinations: create, edit, delete"),
    ("places.edit", "Places: create, edit, delete"),
    ("ads.edit", "Ads: create, edit, delete"),
    ("images.upload", "Images: upload"),
    ("images.delete", "Images: delete"),
)


def user_has_permission(user: User | None, permission_key: str) -> bool:
    if not user or not user.is_active:
        return False
    for role in user.roles:
        for perm in role.permissions:
            if perm.key == permission_key:
                return True
    return False


def current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise Unauthorized("You must be logged in to access this resource")
    return u


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated -> 401
            if not user or not user.is_active:
                raise Unauthorized("You must be logged in to access this resource")
            # Authenticated but unauthorized -> 403
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                current_app.logger.warning(
                    "Forbidden: user=%s missing_permission=%s request_id=%s",
                    user.email,
                    permission_key,
                    getattr(g, "request_id", None),
                )
                raise Forbidden(
                    "You do not have permission to perform this action",
                    error="Admin access required",
                )
            return fn(*args, **kwargs)

        return wrapped

    return decorator
