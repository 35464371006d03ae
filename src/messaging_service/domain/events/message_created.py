from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from messaging_service.domain.entities.message import Message
from messaging_service.domain.value_objects.enums import EventKind


@dataclass(frozen=True, slots=True)
class MessageCreated:
    """Delivered to every session of both parties, sender's other devices included."""

    message: Message

    kind = EventKind.MESSAGE_NEW

    @property
    def targets(self) -> tuple[str, ...]:
        return (self.message.sender_id, self.message.recipient_id)

    def to_payload(self) -> dict[str, Any]:
        msg = self.message
        post = None
        if msg.post is not None:
            post = {
                "id": msg.post.post_id,
                "caption": msg.post.caption,
                "imageUrl": msg.post.image_url,
            }
        return {
            "id": str(msg.id),
            "from": msg.sender_id,
            "to": msg.recipient_id,
            "text": msg.text,
            "mediaUrl": msg.media_url,
            "post": post,
            "read": msg.read,
            "clientMsgId": str(msg.client_msg_id) if msg.client_msg_id else None,
            "createdAt": msg.created_at.isoformat(),
        }
