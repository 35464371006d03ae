"""Repository SQL against a real Postgres. Opt in with MESSAGING_PG_TESTS=1."""
from __future__ import annotations

import os
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from messaging_service.config import settings
from messaging_service.infrastructure.db.base import Base
from messaging_service.infrastructure.db.models import MessageModel  # noqa: F401
from messaging_service.infrastructure.db.uow import SqlAlchemyUoW
from tests.conftest import make_message

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(
        not os.environ.get("MESSAGING_PG_TESTS"),
        reason="set MESSAGING_PG_TESTS=1 and point POSTGRES_* at a scratch database",
    ),
]


@pytest_asyncio.fixture
async def uow():
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with SqlAlchemyUoW(session_factory()) as uow:
        yield uow
    await engine.dispose()


async def _store(uow, *messages):
    stored = []
    for m in messages:
        msg, created = await uow.messages_w.create_if_not_exists(m)
        assert created
        stored.append(msg)
    await uow.commit()
    return stored


@pytest.mark.asyncio
async def test_summary_counts_unread_and_breaks_ties_by_insertion(uow):
    first, second, _ = await _store(
        uow,
        make_message(sender_id="u2", recipient_id="u1", text="a", minutes=5),
        make_message(sender_id="u2", recipient_id="u1", text="b", minutes=5),
        make_message(sender_id="u1", recipient_id="u3", text="c", minutes=1),
    )
    assert second.seq > first.seq

    rows = await uow.messages.summarize_for("u1")

    assert [r.correspondent_id for r in rows] == ["u2", "u3"]
    assert rows[0].last_message.id == second.id
    assert rows[0].unread_count == 2
    assert rows[1].unread_count == 0

    rows = await uow.messages.summarize_for("u2")
    assert [(r.correspondent_id, r.unread_count) for r in rows] == [("u1", 0)]


@pytest.mark.asyncio
async def test_list_between_pages_backwards(uow):
    stored = await _store(
        uow,
        *(make_message(text=f"m{i}", minutes=i) for i in range(4)),
        make_message(sender_id="u3", recipient_id="u1", text="elsewhere"),
    )

    thread = await uow.messages.list_between("u2", "u1")
    assert [m.text for m in thread] == ["m0", "m1", "m2", "m3"]

    page = await uow.messages.list_between("u1", "u2", before=stored[3].id, limit=2)
    assert [m.text for m in page] == ["m1", "m2"]

    assert await uow.messages.list_between("u1", "u2", before=uuid.uuid4()) == []


@pytest.mark.asyncio
async def test_retry_with_same_client_msg_id_returns_stored_row(uow):
    client_msg_id = uuid.uuid4()
    first, created = await uow.messages_w.create_if_not_exists(
        make_message(client_msg_id=client_msg_id),
    )
    again, created_again = await uow.messages_w.create_if_not_exists(
        make_message(text="retry", client_msg_id=client_msg_id),
    )
    await uow.commit()

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert again.text == "hello"
    assert len(await uow.messages.list_between("u1", "u2")) == 1


@pytest.mark.asyncio
async def test_mark_read_only_touches_one_direction(uow):
    await _store(
        uow,
        make_message(sender_id="u2", recipient_id="u1", minutes=1),
        make_message(sender_id="u2", recipient_id="u1", minutes=2),
        make_message(sender_id="u1", recipient_id="u2", minutes=3),
    )

    assert await uow.messages_w.mark_read("u1", "u2") == 2
    assert await uow.messages_w.mark_read("u1", "u2") == 0
    await uow.commit()
    uow.session.expire_all()

    thread = await uow.messages.list_between("u1", "u2")
    assert [m.read for m in thread] == [True, True, False]
