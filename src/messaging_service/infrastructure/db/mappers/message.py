from __future__ import annotations

from typing import Any

from messaging_service.domain.entities.message import Message, PostSnapshot
from messaging_service.infrastructure.db.models.message import MessageModel


def post_to_json(post: PostSnapshot | None) -> dict[str, Any] | None:
    if post is None:
        return None
    return {"id": post.post_id, "caption": post.caption, "imageUrl": post.image_url}


def post_from_json(raw: dict[str, Any] | None) -> PostSnapshot | None:
    if not raw:
        return None
    return PostSnapshot(
        post_id=str(raw["id"]),
        caption=raw.get("caption") or "",
        image_url=raw.get("imageUrl") or "",
    )


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        sender_id=model.sender_id,
        recipient_id=model.recipient_id,
        text=model.text,
        media_url=model.media_url,
        post=post_from_json(model.post),
        read=model.read,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        seq=model.seq,
    )


def entity_to_values(entity: Message) -> dict[str, Any]:
    """Column values for an INSERT; ``seq`` is left to the database."""
    return {
        "id": entity.id,
        "sender_id": entity.sender_id,
        "recipient_id": entity.recipient_id,
        "text": entity.text,
        "media_url": entity.media_url,
        "post": post_to_json(entity.post),
        "read": entity.read,
        "client_msg_id": entity.client_msg_id,
        "created_at": entity.created_at,
    }
