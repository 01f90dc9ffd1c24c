from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, request, session
from werkzeug.security import check_password_hash

from app.tourbook.api import json_body, ok
from app.tourbook.audit import record_event
from app.tourbook.db import db_session
from app.tourbook.errors import BadRequest, TooManyRequests, Unauthorized
from app.tourbook.models import User
from app.tourbook.security import drop_csrf_token, ensure_csrf_token

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _login_attempts[ip] = [t for t in _login_attempts[ip] if t > cutoff]
    return len(_login_attempts[ip]) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "roles": sorted(r.key for r in user.roles),
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    if request.path.startswith(("/static/", "/media/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None
        return
    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


@bp.post("/auth/sign-in")
def sign_in():
    payload = json_body()
    email = payload.get("email") or ""
    password = payload.get("password") or ""
    if not isinstance(email, str) or not isinstance(password, str):
        raise BadRequest("Email and password must be strings", error="Invalid input")
    email = email.strip().lower()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        raise TooManyRequests("Too many sign-in attempts. Please wait 5 minutes.")

    _record_attempt(ip)

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        current_app.logger.info("Sign-in failed email=%s ip=%s", email, ip)
        raise Unauthorized("Invalid email or password", error="Invalid credentials")

    session.clear()
    session["user_id"] = user.id
    session.permanent = True
    _login_attempts[ip].clear()
    user.last_login_at = datetime.utcnow()
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return ok({"user": serialize_user(user), "csrfToken": ensure_csrf_token()}, "Signed in successfully")


@bp.post("/auth/sign-out")
def sign_out():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
        s.commit()
    session.pop("user_id", None)
    drop_csrf_token()
    return ok(message="Signed out successfully")


@bp.get("/session")
def current_session():
    user = getattr(g, "current_user", None)
    if not user:
        raise Unauthorized("No active session")
    return ok({"user": serialize_user(user), "csrfToken": ensure_csrf_token()})
