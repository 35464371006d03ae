from __future__ import annotations

from messaging_service.application.dto.conversation import ConversationSummary, UserProfile
from messaging_service.application.dto.principal import Principal
from messaging_service.application.ports.directory import UserDirectory
from messaging_service.application.uow import UnitOfWork


async def list_conversations(
    principal: Principal,
    uow: UnitOfWork,
    users: UserDirectory,
) -> list[ConversationSummary]:
    """One row per correspondent, most recently active first."""
    rows = await uow.messages.summarize_for(principal.user_id)
    if not rows:
        return []

    profiles = await users.get_profiles([r.correspondent_id for r in rows])

    summaries = [
        ConversationSummary(
            user=profiles.get(r.correspondent_id) or UserProfile.placeholder(r.correspondent_id),
            last_message=r.last_message,
            unread_count=r.unread_count,
        )
        for r in rows
    ]
    summaries.sort(
        key=lambda s: (s.last_message.created_at, s.last_message.seq or 0),
        reverse=True,
    )
    return summaries
