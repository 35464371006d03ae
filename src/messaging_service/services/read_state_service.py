from __future__ import annotations

import logging

from messaging_service.application.dto.principal import Principal
from messaging_service.application.ports.bus import EventBus
from messaging_service.application.uow import UnitOfWork
from messaging_service.domain.events.messages_read import MessagesRead

logger = logging.getLogger(__name__)


async def mark_read(
    principal: Principal,
    correspondent_id: str,
    uow: UnitOfWork,
    bus: EventBus,
) -> int:
    """Mark everything the correspondent sent the caller as read.

    Returns the number of messages flipped. The correspondent is only told
    when something actually changed, so repeated calls stay silent.
    """
    modified = await uow.messages_w.mark_read(principal.user_id, correspondent_id)
    await uow.commit()

    if modified:
        event = MessagesRead(reader_id=principal.user_id, sender_id=correspondent_id)
        try:
            await bus.publish(event.kind, event.to_payload(), event.targets)
        except Exception:
            logger.exception(
                "Read receipt %s -> %s not delivered", principal.user_id, correspondent_id,
            )
    return modified
