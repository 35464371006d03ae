from __future__ import annotations

from typing import Any

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import AuthenticationError


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build the caller identity from decoded JWT claims (``sub``, or legacy ``id``)."""
    subject = payload.get("sub") or payload.get("id")
    if not subject:
        raise AuthenticationError("Token has no subject")
    if len(str(subject)) > 64:
        raise AuthenticationError("Token subject is too long")
    return Principal(user_id=str(subject), role=str(payload.get("role") or "user"))
