from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket

from messaging_service.domain.value_objects.enums import ConnectionState
from messaging_service.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    pass


class WebSocketSession:
    """Session handle for one authenticated WebSocket connection."""

    def __init__(self, websocket: WebSocket, user_id: str) -> None:
        self.id = uuid.uuid4().hex
        self.user_id = user_id
        self.state = ConnectionState.CONNECTING
        self._ws = websocket
        self._send_lock = asyncio.Lock()

    async def accept(self) -> None:
        await self._ws.accept()
        self.state = ConnectionState.AUTHENTICATED
        logger.debug("WS %s authenticated as %s", self.id, self.user_id)

    def mark_active(self) -> None:
        if self.state in (ConnectionState.AUTHENTICATED, ConnectionState.IDLE):
            self.state = ConnectionState.ACTIVE

    def mark_idle(self) -> None:
        if self.state in (ConnectionState.AUTHENTICATED, ConnectionState.ACTIVE):
            self.state = ConnectionState.IDLE

    def mark_disconnected(self) -> None:
        self.state = ConnectionState.DISCONNECTED

    @property
    def is_open(self) -> bool:
        return self.state not in (ConnectionState.CONNECTING, ConnectionState.DISCONNECTED)

    async def send(self, event_type: str, data: dict[str, Any]) -> None:
        if not self.is_open:
            raise SessionClosedError(f"session {self.id} is {self.state}")
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        async with self._send_lock:
            await self._ws.send_text(raw)

    async def receive_text(self) -> str:
        return await self._ws.receive_text()
