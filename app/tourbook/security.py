import secrets

from flask import Request, session

CSRF_HEADER = "X-CSRF-Token"
CSRF_SESSION_KEY = "csrf_token"
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Sign-in has no token yet; the book only touches the visitor's own navigation state.
CSRF_EXEMPT_BLUEPRINTS = frozenset({"auth", "book"})


def ensure_csrf_token() -> str:
    """Return the session's CSRF token, minting one on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def drop_csrf_token() -> None:
    session.pop(CSRF_SESSION_KEY, None)


def csrf_required(req: Request, signed_in: bool) -> bool:
    """
    Only signed-in sessions need the header. Anonymous callers have no
    session worth forging and get a 401 from the permission check instead.
    """
    if req.method not in MUTATING_METHODS or not signed_in:
        return False
    return (req.blueprint or "") not in CSRF_EXEMPT_BLUEPRINTS


def validate_csrf(req: Request) -> bool:
    """The JSON API reads the token from the header only (no form posts)."""
    token = req.headers.get(CSRF_HEADER)
    expected = session.get(CSRF_SESSION_KEY)
    return bool(token and expected and secrets.compare_digest(str(token), str(expected)))
