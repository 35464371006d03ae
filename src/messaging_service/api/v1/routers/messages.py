from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from messaging_service.api.deps import (
    CurrentPrincipal,
    EventBusDep,
    PostDirectoryDep,
    UoWDep,
)
from messaging_service.api.v1.schemas.message import (
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
)
from messaging_service.config import settings
from messaging_service.services import message_service, read_state_service

router = APIRouter(prefix="/api/v1/messaging/messages", tags=["messages"])

# matches the width of the sender/recipient columns
OtherUserId = Annotated[str, Path(min_length=1, max_length=64)]


@router.get("/{other_user_id}", response_model=list[MessageResponse])
async def fetch_thread(
    other_user_id: OtherUserId,
    principal: CurrentPrincipal,
    uow: UoWDep,
    before: UUID | None = Query(None),
    limit: int | None = Query(None, ge=1, le=settings.THREAD_PAGE_MAX),
) -> list[MessageResponse]:
    messages = await message_service.fetch_thread(
        principal, other_user_id, uow, before=before, limit=limit,
    )
    return [MessageResponse.from_entity(m) for m in messages]


@router.post("/{other_user_id}", response_model=MessageResponse, status_code=201)
async def send_message(
    other_user_id: OtherUserId,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    bus: EventBusDep,
    posts: PostDirectoryDep,
) -> MessageResponse:
    msg = await message_service.send_message(
        principal, other_user_id, body.to_dto(), uow, bus, posts,
    )
    return MessageResponse.from_entity(msg)


@router.post("/{other_user_id}/read", response_model=MarkReadResponse)
async def mark_read(
    other_user_id: OtherUserId,
    principal: CurrentPrincipal,
    uow: UoWDep,
    bus: EventBusDep,
) -> MarkReadResponse:
    modified = await read_state_service.mark_read(principal, other_user_id, uow, bus)
    return MarkReadResponse(modified=modified)
