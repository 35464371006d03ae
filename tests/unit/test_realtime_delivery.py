from __future__ import annotations

from typing import Any

import pytest

from messaging_service.domain.value_objects.enums import ConnectionState
from messaging_service.infrastructure.bus.local import LocalEventBus
from messaging_service.infrastructure.ws.registry import SessionRegistry
from messaging_service.infrastructure.ws.session import SessionClosedError, WebSocketSession
from tests.conftest import RecordingSession


class FakeWebSocket:
    def __init__(self) -> None:
        self.accepted = False
        self.sent: list[str] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        self.sent.append(data)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def bus(registry) -> LocalEventBus:
    return LocalEventBus(registry)


def test_registry_tracks_multiple_sessions_per_user(registry):
    phone, laptop = RecordingSession(), RecordingSession()
    registry.add("u1", phone)
    registry.add("u1", laptop)

    assert registry.is_online("u1")
    assert set(registry.handles("u1")) == {phone, laptop}

    assert registry.remove("u1", phone) is False
    assert registry.is_online("u1")
    assert registry.remove("u1", laptop) is True
    assert not registry.is_online("u1")
    assert registry.online_count() == 0


def test_removing_unknown_handle_is_noop(registry):
    assert registry.remove("nobody", RecordingSession()) is False


@pytest.mark.asyncio
async def test_publish_reaches_every_session_of_each_target(bus):
    a1, a2, b1, c1 = (RecordingSession() for _ in range(4))
    bus.subscribe("u1", a1)
    bus.subscribe("u1", a2)
    bus.subscribe("u2", b1)
    bus.subscribe("u3", c1)

    await bus.publish("message:new", {"id": "m1"}, ["u1", "u2"])

    for s in (a1, a2, b1):
        assert s.sent == [("message:new", {"id": "m1"})]
    assert c1.sent == []


@pytest.mark.asyncio
async def test_duplicate_targets_deliver_once(bus):
    session = RecordingSession()
    bus.subscribe("u1", session)

    delivered = await bus.deliver("typing", {}, ["u1", "u1"])

    assert delivered == 1
    assert len(session.sent) == 1


@pytest.mark.asyncio
async def test_offline_target_is_dropped_without_error(bus):
    assert await bus.deliver("message:new", {"id": "m1"}, ["u9"]) == 0


@pytest.mark.asyncio
async def test_unsubscribed_session_receives_nothing(bus):
    session = RecordingSession()
    bus.subscribe("u2", session)
    bus.unsubscribe("u2", session)

    await bus.publish("message:new", {"id": "m1"}, ["u2"])

    assert session.sent == []


@pytest.mark.asyncio
async def test_failed_send_evicts_only_that_session(bus, registry):
    dead, alive = RecordingSession(broken=True), RecordingSession()
    bus.subscribe("u1", dead)
    bus.subscribe("u1", alive)

    delivered = await bus.deliver("message:read", {"from": "u2", "to": "u1"}, ["u1"])

    assert delivered == 1
    assert alive.sent == [("message:read", {"from": "u2", "to": "u1"})]
    assert registry.handles("u1") == (alive,)


@pytest.mark.asyncio
async def test_session_state_machine():
    ws = FakeWebSocket()
    session = WebSocketSession(ws, "u1")  # type: ignore[arg-type]
    assert session.state == ConnectionState.CONNECTING
    assert not session.is_open

    await session.accept()
    assert ws.accepted
    assert session.state == ConnectionState.AUTHENTICATED

    session.mark_active()
    assert session.state == ConnectionState.ACTIVE
    session.mark_idle()
    assert session.state == ConnectionState.IDLE
    session.mark_active()
    assert session.state == ConnectionState.ACTIVE

    session.mark_disconnected()
    assert session.state == ConnectionState.DISCONNECTED
    session.mark_active()
    assert session.state == ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_session_send_wraps_envelope():
    ws = FakeWebSocket()
    session = WebSocketSession(ws, "u1")  # type: ignore[arg-type]
    await session.accept()

    await session.send("typing", {"from": "u2", "to": "u1", "typing": True})

    assert ws.sent == ['{"type":"typing","data":{"from":"u2","to":"u1","typing":true}}']


@pytest.mark.asyncio
async def test_send_before_accept_or_after_close_raises():
    session = WebSocketSession(FakeWebSocket(), "u1")  # type: ignore[arg-type]
    with pytest.raises(SessionClosedError):
        await session.send("pong", {})

    await session.accept()
    session.mark_disconnected()
    with pytest.raises(SessionClosedError):
        await session.send("pong", {})


@pytest.mark.asyncio
async def test_closed_session_is_evicted_by_bus(bus, registry):
    session = WebSocketSession(FakeWebSocket(), "u1")  # type: ignore[arg-type]
    await session.accept()
    bus.subscribe("u1", session)
    session.mark_disconnected()

    delivered: Any = await bus.deliver("message:new", {}, ["u1"])

    assert delivered == 0
    assert not registry.is_online("u1")
