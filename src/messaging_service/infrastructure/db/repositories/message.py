from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, case, func, or_, select, tuple_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from messaging_service.application.dto.conversation import ConversationRow
from messaging_service.domain.entities.message import Message
from messaging_service.infrastructure.db.mappers import message as mapper
from messaging_service.infrastructure.db.models.message import MessageModel


def _pair(user_a: str, user_b: str):
    return or_(
        and_(MessageModel.sender_id == user_a, MessageModel.recipient_id == user_b),
        and_(MessageModel.sender_id == user_b, MessageModel.recipient_id == user_a),
    )


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_between(
        self,
        user_a: str,
        user_b: str,
        *,
        before: UUID | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        pair = _pair(user_a, user_b)
        stmt = select(MessageModel).where(pair)

        if before is not None:
            anchor_stmt = select(MessageModel.created_at, MessageModel.seq).where(
                MessageModel.id == before, pair,
            )
            anchor = (await self._session.execute(anchor_stmt)).one_or_none()
            if anchor is None:
                return []
            stmt = stmt.where(
                tuple_(MessageModel.created_at, MessageModel.seq)
                < tuple_(anchor.created_at, anchor.seq)
            )

        if limit is None:
            stmt = stmt.order_by(MessageModel.created_at.asc(), MessageModel.seq.asc())
            result = await self._session.execute(stmt)
            return [mapper.model_to_entity(m) for m in result.scalars().all()]

        # newest page first, then flipped back to thread order
        stmt = stmt.order_by(MessageModel.created_at.desc(), MessageModel.seq.desc()).limit(limit)
        result = await self._session.execute(stmt)
        page = [mapper.model_to_entity(m) for m in result.scalars().all()]
        page.reverse()
        return page

    async def summarize_for(self, user_id: str) -> list[ConversationRow]:
        # Single statement: last message and unread count come from the same
        # snapshot, so they can never disagree with each other.
        correspondent = case(
            (MessageModel.sender_id == user_id, MessageModel.recipient_id),
            else_=MessageModel.sender_id,
        )
        unread = case(
            (and_(MessageModel.recipient_id == user_id, MessageModel.read.is_(False)), 1),
            else_=0,
        )
        ranked = (
            select(
                MessageModel,
                correspondent.label("correspondent_id"),
                func.row_number()
                .over(
                    partition_by=correspondent,
                    order_by=(MessageModel.created_at.desc(), MessageModel.seq.desc()),
                )
                .label("rn"),
                func.sum(unread).over(partition_by=correspondent).label("unread_count"),
            )
            .where(or_(MessageModel.sender_id == user_id, MessageModel.recipient_id == user_id))
            .subquery("ranked")
        )
        latest = aliased(MessageModel, ranked)
        stmt = (
            select(latest, ranked.c.correspondent_id, ranked.c.unread_count)
            .where(ranked.c.rn == 1)
            .order_by(ranked.c.created_at.desc(), ranked.c.seq.desc())
        )
        result = await self._session.execute(stmt)
        return [
            ConversationRow(
                correspondent_id=correspondent_id,
                last_message=mapper.model_to_entity(model),
                unread_count=int(unread_count or 0),
            )
            for model, correspondent_id, unread_count in result.all()
        ]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        stmt = (
            pg_insert(MessageModel)
            .values(**mapper.entity_to_values(message))
            .on_conflict_do_nothing(constraint="uq_direct_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Conflict: the same sender retried the same client_msg_id
        existing = await self._get_by_client_msg_id(message.sender_id, message.client_msg_id)
        assert existing is not None
        return existing, False

    async def mark_read(self, reader_id: str, sender_id: str) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.sender_id == sender_id,
                MessageModel.recipient_id == reader_id,
                MessageModel.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def _get_by_client_msg_id(
        self,
        sender_id: str,
        client_msg_id: UUID | None,
    ) -> Message | None:
        if client_msg_id is None:
            return None
        stmt = select(MessageModel).where(
            MessageModel.sender_id == sender_id,
            MessageModel.client_msg_id == client_msg_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
