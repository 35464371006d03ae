from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from messaging_service.domain.value_objects.enums import EventKind


@dataclass(frozen=True, slots=True)
class TypingChanged:
    sender_id: str
    recipient_id: str
    typing: bool

    kind = EventKind.TYPING

    @property
    def targets(self) -> tuple[str, ...]:
        return (self.recipient_id,)

    def to_payload(self) -> dict[str, Any]:
        return {"from": self.sender_id, "to": self.recipient_id, "typing": self.typing}
