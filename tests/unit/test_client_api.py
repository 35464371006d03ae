from __future__ import annotations

import json

import httpx
import pytest
import pytest_asyncio
import respx

from messaging_service.client.api import (
    MessagingAuthError,
    MessagingClient,
    MessagingConnectionError,
    MessagingNotFoundError,
    MessagingRequestError,
    MessagingValidationError,
)
from messaging_service.client.state import DeliveryStatus

BASE = "https://social.test"
API = f"{BASE}/api/v1/messaging"


def _wire_message(**overrides):
    data = {
        "id": "6f1c1c84-61bb-4c59-8d3c-0a9f4b0b8a11",
        "from": "u1",
        "to": "u2",
        "text": "hi",
        "mediaUrl": None,
        "post": None,
        "read": False,
        "clientMsgId": None,
        "createdAt": "2026-01-01T12:00:00Z",
    }
    data.update(overrides)
    return data


@pytest_asyncio.fixture
async def client():
    c = MessagingClient(BASE, "tok")
    yield c
    await c.aclose()


@pytest.mark.asyncio
@respx.mock
async def test_list_conversations(client):
    route = respx.get(f"{API}/conversations").respond(
        200,
        json=[{
            "user": {"id": "u2", "username": "bob", "avatarUrl": None, "role": "user", "missing": False},
            "lastMessage": _wire_message(),
            "unreadCount": 2,
        }],
    )

    [entry] = await client.list_conversations()

    assert route.calls[0].request.headers["Authorization"] == "Bearer tok"
    assert entry.correspondent_id == "u2"
    assert entry.username == "bob"
    assert entry.unread_count == 2
    assert entry.last_message.text == "hi"
    assert entry.last_message.created_at.tzinfo is not None


@pytest.mark.asyncio
@respx.mock
async def test_fetch_thread_with_paging_params(client):
    route = respx.get(f"{API}/messages/u2").respond(200, json=[_wire_message()])

    [msg] = await client.fetch_thread("u2", before="abc", limit=20)

    params = route.calls[0].request.url.params
    assert params["before"] == "abc"
    assert params["limit"] == "20"
    assert msg.sender_id == "u1"
    assert msg.status == DeliveryStatus.SENT


@pytest.mark.asyncio
@respx.mock
async def test_send_message_sends_camel_case_body(client):
    route = respx.post(f"{API}/messages/u2").respond(
        201, json=_wire_message(clientMsgId="c-1", text=None, post={"id": "p1", "caption": "x", "imageUrl": "y"}),
    )

    msg = await client.send_message("u2", post_id="p1", client_msg_id="c-1")

    body = json.loads(route.calls[0].request.content)
    assert body == {"postId": "p1", "clientMsgId": "c-1"}
    assert msg.client_msg_id == "c-1"
    assert msg.post["caption"] == "x"


@pytest.mark.asyncio
@respx.mock
async def test_mark_read_returns_count(client):
    respx.post(f"{API}/messages/u2/read").respond(200, json={"modified": 3})
    assert await client.mark_read("u2") == 3


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, MessagingAuthError),
        (403, MessagingAuthError),
        (404, MessagingNotFoundError),
        (422, MessagingValidationError),
        (500, MessagingRequestError),
    ],
)
async def test_error_statuses(client, status, error):
    respx.post(f"{API}/messages/u2").respond(status, json={"detail": "nope"})
    with pytest.raises(error):
        await client.send_message("u2", text="hi")


@pytest.mark.asyncio
@respx.mock
async def test_network_failure_is_connection_error(client):
    respx.get(f"{API}/conversations").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(MessagingConnectionError):
        await client.list_conversations()
