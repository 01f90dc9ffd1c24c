import json
from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.tourbook.models import AuditEvent, User

# Column widths on audit_events.
_ENTITY_ID_MAX = 255
_REASON_MAX = 512
_CLIENT_IP_MAX = 64


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


def _request_context() -> tuple[str | None, str | None]:
    """(request_id, client_ip) of the current request, or Nones from scripts and seeds."""
    if not has_request_context():
        return None, None
    return getattr(g, "request_id", None), request.remote_addr


def _dump_metadata(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    # datetimes and other non-JSON values in change sets are stringified
    return json.dumps(metadata, sort_keys=True, default=str)


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> AuditEvent:
    """
    Append one audit row for a content or auth action, e.g. `place.delete`.
    The caller commits.
    """
    ctx_request_id, client_ip = _request_context()
    ev = AuditEvent(
        request_id=request_id or ctx_request_id,
        client_ip=_clip(client_ip, _CLIENT_IP_MAX),
        actor_user_id=actor.id if actor else None,
        actor_user_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=_clip(entity_id, _ENTITY_ID_MAX),
        reason=_clip(reason, _REASON_MAX),
        metadata_json=_dump_metadata(metadata),
    )
    s.add(ev)
    return ev
