from __future__ import annotations

import httpx
import pytest
import respx

from messaging_service.infrastructure.directory.http_posts import HttpPostDirectory
from messaging_service.infrastructure.directory.http_users import HttpUserDirectory

USERS = "https://accounts.test/api/users"
POSTS = "https://feed.test/api/posts"


@pytest.mark.asyncio
@respx.mock
async def test_user_directory_resolves_found_and_skips_missing():
    respx.get(f"{USERS}/u2").respond(
        200, json={"_id": "u2", "username": "bob", "avatarUrl": "https://img/bob.png", "role": "user"},
    )
    respx.get(f"{USERS}/gone").respond(404)
    respx.get(f"{USERS}/flaky").mock(side_effect=httpx.ConnectError("boom"))

    async with httpx.AsyncClient(base_url=USERS) as http:
        directory = HttpUserDirectory(http, "svc")
        profiles = await directory.get_profiles(["u2", "gone", "flaky", "u2"])

    assert list(profiles) == ["u2"]
    assert profiles["u2"].username == "bob"
    assert profiles["u2"].avatar_url == "https://img/bob.png"


@pytest.mark.asyncio
@respx.mock
async def test_user_directory_sends_service_token():
    route = respx.get(f"{USERS}/u2").respond(200, json={"_id": "u2", "username": "bob"})

    async with httpx.AsyncClient(base_url=USERS) as http:
        await HttpUserDirectory(http, "svc").get_profiles(["u2"])

    assert route.calls[0].request.headers["Authorization"] == "Bearer svc"


@pytest.mark.asyncio
@respx.mock
async def test_post_directory_snapshot_and_missing():
    respx.get(f"{POSTS}/p1").respond(
        200, json={"_id": "p1", "caption": "Sunset", "imageUrl": "https://img/p1.jpg"},
    )
    respx.get(f"{POSTS}/p2").respond(404)

    async with httpx.AsyncClient(base_url=POSTS) as http:
        directory = HttpPostDirectory(http)
        snapshot = await directory.get_snapshot("p1")
        missing = await directory.get_snapshot("p2")

    assert snapshot is not None
    assert snapshot.caption == "Sunset"
    assert snapshot.image_url == "https://img/p1.jpg"
    assert missing is None


@pytest.mark.asyncio
@respx.mock
async def test_post_directory_server_error_propagates():
    respx.get(f"{POSTS}/p1").respond(500)

    async with httpx.AsyncClient(base_url=POSTS) as http:
        with pytest.raises(httpx.HTTPStatusError):
            await HttpPostDirectory(http).get_snapshot("p1")
