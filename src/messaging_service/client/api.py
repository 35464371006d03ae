"""Async REST client for the messaging endpoints."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from messaging_service.client.state import ClientMessage, ConversationEntry

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/messaging"


class MessagingApiError(Exception):
    """Base error for messaging request failures."""


class MessagingAuthError(MessagingApiError):
    """Raised when the server rejects the bearer token."""


class MessagingNotFoundError(MessagingApiError):
    """Raised when a referenced resource does not exist."""


class MessagingValidationError(MessagingApiError):
    """Raised when the server rejects the request body."""


class MessagingConnectionError(MessagingApiError):
    """Raised when the server cannot be reached."""


class MessagingRequestError(MessagingApiError):
    """Raised for any other non-success response."""


class MessagingClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._token = token
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self.http.request(
                method,
                f"{API_PREFIX}{path}",
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.TimeoutException as exc:
            raise MessagingConnectionError(f"timeout: {method} {path}") from exc
        except httpx.HTTPError as exc:
            raise MessagingConnectionError(f"connection_failed: {exc}") from exc

        if response.status_code in {401, 403}:
            raise MessagingAuthError("auth_failed")
        if response.status_code == 404:
            raise MessagingNotFoundError(_detail(response) or "not_found")
        if response.status_code in {400, 422}:
            raise MessagingValidationError(_detail(response) or "invalid_request")
        if response.status_code >= 400:
            raise MessagingRequestError(f"error_{response.status_code}")
        return response.json()

    async def list_conversations(self) -> list[ConversationEntry]:
        data = await self._request("GET", "/conversations")
        return [ConversationEntry.from_wire(item) for item in data]

    async def fetch_thread(
        self,
        other_user_id: str,
        *,
        before: str | None = None,
        limit: int | None = None,
    ) -> list[ClientMessage]:
        params: dict[str, Any] = {}
        if before is not None:
            params["before"] = before
        if limit is not None:
            params["limit"] = limit
        data = await self._request(
            "GET", f"/messages/{quote(other_user_id, safe='')}", params=params or None,
        )
        return [ClientMessage.from_wire(item) for item in data]

    async def send_message(
        self,
        other_user_id: str,
        *,
        text: str | None = None,
        media_url: str | None = None,
        post_id: str | None = None,
        client_msg_id: str | None = None,
    ) -> ClientMessage:
        body = {
            "text": text,
            "mediaUrl": media_url,
            "postId": post_id,
            "clientMsgId": client_msg_id,
        }
        data = await self._request(
            "POST",
            f"/messages/{quote(other_user_id, safe='')}",
            json={k: v for k, v in body.items() if v is not None},
        )
        return ClientMessage.from_wire(data)

    async def mark_read(self, other_user_id: str) -> int:
        data = await self._request("POST", f"/messages/{quote(other_user_id, safe='')}/read")
        return int(data["modified"])


def _detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    detail = payload.get("detail") if isinstance(payload, dict) else None
    return detail if isinstance(detail, str) else None
