from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from messaging_service.domain.value_objects.enums import EventKind


@dataclass(frozen=True, slots=True)
class MessagesRead:
    """The reader has now read everything the sender sent them."""

    reader_id: str
    sender_id: str

    kind = EventKind.MESSAGE_READ

    @property
    def targets(self) -> tuple[str, ...]:
        return (self.sender_id,)

    def to_payload(self) -> dict[str, Any]:
        return {"from": self.reader_id, "to": self.sender_id}
