"""Wire format for events crossing processes over Redis.

Payloads are already plain JSON (``to_payload`` renders ids and timestamps
as strings), so no custom encoder is needed.
"""
from __future__ import annotations

import json
from typing import Any


def serialize_event(event_type: str, targets: list[str], payload: dict[str, Any]) -> str:
    return json.dumps({"event": event_type, "targets": targets, "payload": payload})


def deserialize_event(raw: str | bytes) -> tuple[str, list[str], dict[str, Any]]:
    data = json.loads(raw)
    return str(data["event"]), list(data.get("targets", [])), data.get("payload", {})
