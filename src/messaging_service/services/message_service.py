from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from messaging_service.application.dto.message import SendMessageDTO
from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import NotFoundError
from messaging_service.application.policies.content import assert_sendable
from messaging_service.application.ports.bus import EventBus
from messaging_service.application.ports.directory import PostDirectory
from messaging_service.application.uow import UnitOfWork
from messaging_service.domain.entities.message import Message
from messaging_service.domain.events.message_created import MessageCreated
from messaging_service.domain.events.typing_changed import TypingChanged

logger = logging.getLogger(__name__)


async def send_message(
    principal: Principal,
    recipient_id: str,
    content: SendMessageDTO,
    uow: UnitOfWork,
    bus: EventBus,
    posts: PostDirectory,
) -> Message:
    """Store a message, then notify both parties' live sessions.

    The insert and the publish are not transactional with each other. Once
    the row is committed the send has succeeded; a failed publish is only
    logged and the recipient picks the message up on the next fetch.
    """
    assert_sendable(principal.user_id, recipient_id, content)

    post = None
    if content.shared_post_id:
        post = await posts.get_snapshot(content.shared_post_id)
        if post is None:
            raise NotFoundError("Shared post not found")

    msg = Message(
        id=uuid.uuid4(),
        sender_id=principal.user_id,
        recipient_id=recipient_id,
        text=content.text if content.has_text else None,
        media_url=content.media_url or None,
        post=post,
        read=False,
        client_msg_id=content.client_msg_id,
        created_at=datetime.now(timezone.utc),
    )

    msg, created = await uow.messages_w.create_if_not_exists(msg)
    if not created:
        logger.debug("Duplicate send %s from %s ignored", msg.client_msg_id, msg.sender_id)
        return msg

    await uow.commit()

    event = MessageCreated(msg)
    try:
        await bus.publish(event.kind, event.to_payload(), event.targets)
    except Exception:
        logger.exception(
            "Message %s stored but live delivery failed (%s -> %s)",
            msg.id, msg.sender_id, msg.recipient_id,
        )
    return msg


async def fetch_thread(
    principal: Principal,
    correspondent_id: str,
    uow: UnitOfWork,
    *,
    before: uuid.UUID | None = None,
    limit: int | None = None,
) -> list[Message]:
    # The viewer is always one side of the pair, so no separate access check.
    return await uow.messages.list_between(
        principal.user_id, correspondent_id, before=before, limit=limit,
    )


async def relay_typing(
    principal: Principal,
    recipient_id: str,
    typing: bool,
    bus: EventBus,
) -> None:
    if not recipient_id or recipient_id == principal.user_id:
        return
    event = TypingChanged(principal.user_id, recipient_id, typing)
    try:
        await bus.publish(event.kind, event.to_payload(), event.targets)
    except Exception:
        logger.exception("Typing relay %s -> %s failed", principal.user_id, recipient_id)
