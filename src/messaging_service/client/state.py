"""Client-side view state for conversations and threads."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class ThreadStatus(StrEnum):
    UNOPENED = "unopened"
    LOADING = "loading"
    LOADED = "loaded"
    STALE = "stale"


class DeliveryStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


def _parse_ts(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value)


@dataclass(slots=True)
class ClientMessage:
    id: str | None
    sender_id: str
    recipient_id: str
    text: str | None
    media_url: str | None
    post: dict[str, Any] | None
    read: bool
    client_msg_id: str | None
    created_at: datetime
    status: DeliveryStatus = DeliveryStatus.SENT

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> ClientMessage:
        return cls(
            id=str(data["id"]),
            sender_id=data["from"],
            recipient_id=data["to"],
            text=data.get("text"),
            media_url=data.get("mediaUrl"),
            post=data.get("post"),
            read=bool(data.get("read", False)),
            client_msg_id=data.get("clientMsgId"),
            created_at=_parse_ts(data.get("createdAt")),
        )

    @classmethod
    def pending(
        cls,
        sender_id: str,
        recipient_id: str,
        client_msg_id: str,
        *,
        text: str | None = None,
        media_url: str | None = None,
        post_id: str | None = None,
    ) -> ClientMessage:
        return cls(
            id=None,
            sender_id=sender_id,
            recipient_id=recipient_id,
            text=text,
            media_url=media_url,
            post={"id": post_id} if post_id else None,
            read=False,
            client_msg_id=client_msg_id,
            created_at=datetime.now(timezone.utc),
            status=DeliveryStatus.PENDING,
        )

    def matches(self, other: ClientMessage) -> bool:
        """Same logical message: equal server id, or equal client correlation id."""
        if self.id is not None and self.id == other.id:
            return True
        return self.client_msg_id is not None and self.client_msg_id == other.client_msg_id

    def correspondent_of(self, user_id: str) -> str:
        return self.recipient_id if self.sender_id == user_id else self.sender_id


@dataclass(slots=True)
class ThreadState:
    correspondent_id: str
    status: ThreadStatus = ThreadStatus.UNOPENED
    messages: list[ClientMessage] = field(default_factory=list)
    generation: int = 0
    error: str | None = None

    def merge(self, incoming: ClientMessage) -> bool:
        """Insert or replace in place. Returns True if the message was not there yet."""
        for i, existing in enumerate(self.messages):
            if existing.matches(incoming):
                self.messages[i] = incoming
                return False
        self.messages.append(incoming)
        self.messages.sort(key=lambda m: m.created_at)
        return True

    def load(self, fetched: list[ClientMessage]) -> None:
        """Replace with a fresh server page, keeping local rows the page does not cover."""
        local = [m for m in self.messages if not any(m.matches(f) for f in fetched)]
        self.messages = list(fetched)
        for m in local:
            self.merge(m)
        self.error = None

    def prepend(self, older: list[ClientMessage]) -> int:
        added = [m for m in older if not any(m.matches(e) for e in self.messages)]
        self.messages[:0] = added
        return len(added)

    def mark_sent_read(self, sender_id: str) -> None:
        for m in self.messages:
            if m.sender_id == sender_id:
                m.read = True

    @property
    def oldest_id(self) -> str | None:
        for m in self.messages:
            if m.id is not None:
                return m.id
        return None


@dataclass(slots=True)
class ConversationEntry:
    correspondent_id: str
    username: str
    avatar_url: str | None
    role: str | None
    missing: bool
    last_message: ClientMessage
    unread_count: int

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> ConversationEntry:
        user = data["user"]
        return cls(
            correspondent_id=user["id"],
            username=user["username"],
            avatar_url=user.get("avatarUrl"),
            role=user.get("role"),
            missing=bool(user.get("missing", False)),
            last_message=ClientMessage.from_wire(data["lastMessage"]),
            unread_count=int(data.get("unreadCount", 0)),
        )
