from __future__ import annotations

from typing import Protocol
from uuid import UUID

from messaging_service.application.dto.conversation import ConversationRow
from messaging_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_between(
        self,
        user_a: str,
        user_b: str,
        *,
        before: UUID | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        """Both directions, ascending by (created_at, seq).

        Without ``limit`` the whole thread is returned. With ``limit`` the
        newest ``limit`` messages older than ``before`` are returned.
        """
        ...

    async def summarize_for(self, user_id: str) -> list[ConversationRow]:
        """Last message and unread count per correspondent, read in one statement."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). If conflict on client_msg_id → return existing."""
        ...

    async def mark_read(self, reader_id: str, sender_id: str) -> int:
        """Flip read=true on every unread sender→reader message. Return rows changed."""
        ...
