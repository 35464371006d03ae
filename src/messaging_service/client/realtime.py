"""Persistent realtime connection for a messaging client."""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus

logger = logging.getLogger(__name__)

EventCallback = Callable[[str, dict[str, Any]], None]
ConnectedCallback = Callable[[], Awaitable[None]]

EVENT_TYPES = frozenset({"message:new", "typing", "message:read"})


class RealtimeAuthError(Exception):
    """The server refused the handshake; retrying with the same token is pointless."""


class RealtimeClient:
    """Keeps one connection open and hands decoded events to ``on_event``.

    Events missed while disconnected are gone. ``on_connected`` runs after
    every successful (re)connect so the owner can refetch.
    """

    def __init__(
        self,
        url: str,
        token: str,
        on_event: EventCallback,
        *,
        on_connected: ConnectedCallback | None = None,
        reconnect_initial: float = 1.0,
        reconnect_max: float = 30.0,
    ) -> None:
        self._url = url
        self._token = token
        self._on_event = on_event
        self._on_connected = on_connected
        self._reconnect_initial = reconnect_initial
        self._reconnect_max = reconnect_max
        self._ws: ClientConnection | None = None
        self._closing = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def _connect_url(self) -> str:
        sep = "&" if "?" in self._url else "?"
        return f"{self._url}{sep}{urlencode({'token': self._token})}"

    async def run(self) -> None:
        backoff = self._reconnect_initial
        while not self._closing:
            try:
                async with connect(self._connect_url()) as ws:
                    self._ws = ws
                    backoff = self._reconnect_initial
                    logger.info("Realtime connected to %s", self._url)
                    if self._on_connected is not None:
                        await self._on_connected()
                    async for raw in ws:
                        self._handle_frame(raw)
            except InvalidStatus as exc:
                status = exc.response.status_code
                if status in (401, 403):
                    raise RealtimeAuthError(f"handshake rejected with {status}") from exc
                logger.warning("Realtime handshake failed with %s", status)
            except (OSError, ConnectionClosed, InvalidHandshake, TimeoutError) as exc:
                logger.warning("Realtime connection lost: %s", exc)
            finally:
                self._ws = None

            if self._closing:
                break
            logger.debug("Reconnecting in %.1fs", backoff)
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, self._reconnect_max)

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            await self._ws.close()

    async def send_typing(self, to: str, typing: bool) -> bool:
        """Returns False when there is no live connection to send on."""
        return await self._send("typing", {"to": to, "typing": typing})

    async def ping(self) -> bool:
        return await self._send("ping", {})

    async def _send(self, frame_type: str, data: dict[str, Any]) -> bool:
        ws = self._ws
        if ws is None:
            return False
        try:
            await ws.send(json.dumps({"type": frame_type, "data": data}))
        except ConnectionClosed:
            logger.debug("Dropped %s frame, connection closed", frame_type)
            return False
        return True

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            frame = json.loads(raw)
            frame_type = frame["type"]
            data = frame.get("data") or {}
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.warning("Ignoring malformed frame")
            return

        if frame_type in EVENT_TYPES:
            try:
                self._on_event(frame_type, data)
            except Exception:
                logger.exception("Event handler failed for %s", frame_type)
        elif frame_type == "error":
            logger.warning("Server reported error: %s", data)
        # pong and anything newer than this client are ignored
