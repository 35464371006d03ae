"""Shared test fixtures."""
from __future__ import annotations

import dataclasses
import itertools
import uuid
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from messaging_service.application.dto.conversation import ConversationRow, UserProfile
from messaging_service.application.dto.principal import Principal
from messaging_service.domain.entities.message import Message, PostSnapshot


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id="u1")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id="u2")


_BASE_TS = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_message(
    *,
    sender_id: str = "u1",
    recipient_id: str = "u2",
    text: str | None = "hello",
    read: bool = False,
    minutes: int = 0,
    client_msg_id: UUID | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        recipient_id=recipient_id,
        text=text,
        media_url=None,
        post=None,
        read=read,
        client_msg_id=client_msg_id,
        created_at=_BASE_TS + timedelta(minutes=minutes),
    )


def _order_key(m: Message) -> tuple[datetime, int]:
    return m.created_at, m.seq or 0


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_between(
        self,
        user_a: str,
        user_b: str,
        *,
        before: UUID | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        thread = sorted(
            (
                m for m in self._messages
                if (m.sender_id, m.recipient_id) in {(user_a, user_b), (user_b, user_a)}
            ),
            key=_order_key,
        )
        if before is not None:
            anchor = next((m for m in thread if m.id == before), None)
            if anchor is None:
                return []
            thread = [m for m in thread if _order_key(m) < _order_key(anchor)]
        if limit is not None:
            thread = thread[-limit:] if limit else []
        return thread

    async def summarize_for(self, user_id: str) -> list[ConversationRow]:
        latest: dict[str, Message] = {}
        unread: dict[str, int] = {}
        for m in self._messages:
            if user_id not in (m.sender_id, m.recipient_id):
                continue
            other = m.correspondent_of(user_id)
            if other not in latest or _order_key(m) > _order_key(latest[other]):
                latest[other] = m
            unread.setdefault(other, 0)
            if m.recipient_id == user_id and not m.read:
                unread[other] += 1
        rows = [
            ConversationRow(correspondent_id=c, last_message=m, unread_count=unread[c])
            for c, m in latest.items()
        ]
        rows.sort(key=lambda r: _order_key(r.last_message), reverse=True)
        return rows


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    _seq: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_msg_id is not None:
            for m in self._reader._messages:
                if m.sender_id == message.sender_id and m.client_msg_id == message.client_msg_id:
                    return m, False
        stored = dataclasses.replace(message, seq=next(self._seq))
        self._reader._messages.append(stored)
        return stored, True

    async def mark_read(self, reader_id: str, sender_id: str) -> int:
        modified = 0
        msgs = self._reader._messages
        for i, m in enumerate(msgs):
            if m.sender_id == sender_id and m.recipient_id == reader_id and not m.read:
                msgs[i] = dataclasses.replace(m, read=True)
                modified += 1
        return modified


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def add(self, *messages: Message) -> None:
        for m in messages:
            self.messages._messages.append(
                dataclasses.replace(m, seq=next(self.messages_w._seq)),
            )

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


@dataclass
class RecordingBus:
    """EventBus that remembers what was published."""
    published: list[tuple[str, dict[str, Any], list[str]]] = field(default_factory=list)
    fail: bool = False

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        targets: Iterable[str],
    ) -> None:
        if self.fail:
            raise ConnectionError("bus down")
        self.published.append((str(event_type), payload, list(targets)))

    def subscribe(self, identity: str, handle: Any) -> None:
        pass

    def unsubscribe(self, identity: str, handle: Any) -> None:
        pass


@dataclass
class FakeUserDirectory:
    profiles: dict[str, UserProfile] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)

    async def get_profiles(self, user_ids: Sequence[str]) -> dict[str, UserProfile]:
        self.calls.append(list(user_ids))
        return {uid: self.profiles[uid] for uid in user_ids if uid in self.profiles}


@dataclass
class FakePostDirectory:
    posts: dict[str, PostSnapshot] = field(default_factory=dict)

    async def get_snapshot(self, post_id: str) -> PostSnapshot | None:
        return self.posts.get(post_id)


@dataclass(eq=False)
class RecordingSession:
    """SessionHandle that keeps every event it was sent."""
    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    broken: bool = False

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        if self.broken:
            raise RuntimeError("socket gone")
        self.sent.append((str(event_type), data))
