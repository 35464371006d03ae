from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class PostSnapshot:
    """Caption and image of a shared post, copied at send time."""

    post_id: str
    caption: str
    image_url: str


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: str
    recipient_id: str
    text: str | None
    media_url: str | None
    post: PostSnapshot | None
    read: bool
    client_msg_id: UUID | None
    created_at: datetime
    seq: int | None = None

    def correspondent_of(self, user_id: str) -> str:
        return self.recipient_id if self.sender_id == user_id else self.sender_id
