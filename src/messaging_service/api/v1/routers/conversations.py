from __future__ import annotations

from fastapi import APIRouter

from messaging_service.api.deps import CurrentPrincipal, UoWDep, UserDirectoryDep
from messaging_service.api.v1.schemas.conversation import ConversationResponse
from messaging_service.services import conversation_service

router = APIRouter(prefix="/api/v1/messaging/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
    users: UserDirectoryDep,
) -> list[ConversationResponse]:
    summaries = await conversation_service.list_conversations(principal, uow, users)
    return [ConversationResponse.from_summary(s) for s in summaries]
