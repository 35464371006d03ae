"""Seed development data: creates the schema and a sample direct-message thread."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from messaging_service.domain.entities.message import Message
from messaging_service.infrastructure.db.base import Base
from messaging_service.infrastructure.db.models import MessageModel  # noqa: F401
from messaging_service.infrastructure.db.session import AsyncSessionLocal, engine
from messaging_service.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SqlAlchemyUoW(AsyncSessionLocal()) as uow:
        start = datetime.now(timezone.utc) - timedelta(minutes=10)

        messages_data = [
            ("u1", "u2", "Hey! Did you see the sunset post?"),
            ("u2", "u1", "Yes, amazing colours."),
            ("u1", "u2", "Going back there tomorrow"),
            ("u3", "u1", "Welcome aboard!"),
        ]
        for i, (sender_id, recipient_id, text) in enumerate(messages_data):
            msg = Message(
                id=uuid.uuid4(),
                sender_id=sender_id,
                recipient_id=recipient_id,
                text=text,
                media_url=None,
                post=None,
                read=False,
                client_msg_id=uuid.uuid4(),
                created_at=start + timedelta(minutes=i),
            )
            await uow.messages_w.create_if_not_exists(msg)

        await uow.commit()
        logger.info("Seeded %d direct messages", len(messages_data))


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
