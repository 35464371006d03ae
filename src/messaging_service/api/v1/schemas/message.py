from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from messaging_service.application.dto.message import SendMessageDTO
from messaging_service.domain.entities.message import Message, PostSnapshot


class SendMessageRequest(BaseModel):
    text: str | None = None
    media_url: str | None = None
    post_id: str | None = None
    client_msg_id: UUID | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="after")
    def _require_content(self) -> SendMessageRequest:
        if not (self.text and self.text.strip()) and not self.media_url and not self.post_id:
            raise ValueError("Text, media or a shared post is required")
        return self

    def to_dto(self) -> SendMessageDTO:
        return SendMessageDTO(
            text=self.text,
            media_url=self.media_url,
            shared_post_id=self.post_id,
            client_msg_id=self.client_msg_id,
        )


class PostSnapshotResponse(BaseModel):
    id: str
    caption: str
    image_url: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_entity(cls, post: PostSnapshot) -> PostSnapshotResponse:
        return cls(id=post.post_id, caption=post.caption, image_url=post.image_url)


class MessageResponse(BaseModel):
    id: UUID
    from_: str = Field(alias="from")
    to: str
    text: str | None
    media_url: str | None
    post: PostSnapshotResponse | None
    read: bool
    client_msg_id: UUID | None
    created_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_entity(cls, msg: Message) -> MessageResponse:
        return cls(
            id=msg.id,
            from_=msg.sender_id,
            to=msg.recipient_id,
            text=msg.text,
            media_url=msg.media_url,
            post=PostSnapshotResponse.from_entity(msg.post) if msg.post else None,
            read=msg.read,
            client_msg_id=msg.client_msg_id,
            created_at=msg.created_at,
        )


class MarkReadResponse(BaseModel):
    modified: int
