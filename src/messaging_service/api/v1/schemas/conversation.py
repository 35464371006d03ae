from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from messaging_service.api.v1.schemas.message import MessageResponse
from messaging_service.application.dto.conversation import ConversationSummary, UserProfile


class CorrespondentResponse(BaseModel):
    id: str
    username: str
    avatar_url: str | None
    role: str | None
    missing: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_profile(cls, profile: UserProfile) -> CorrespondentResponse:
        return cls(
            id=profile.user_id,
            username=profile.username,
            avatar_url=profile.avatar_url,
            role=profile.role,
            missing=profile.missing,
        )


class ConversationResponse(BaseModel):
    user: CorrespondentResponse
    last_message: MessageResponse
    unread_count: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> ConversationResponse:
        return cls(
            user=CorrespondentResponse.from_profile(summary.user),
            last_message=MessageResponse.from_entity(summary.last_message),
            unread_count=summary.unread_count,
        )
