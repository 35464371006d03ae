"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # typing | ping
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message:new | typing | message:read | error | pong
    data: dict[str, Any] = {}


class TypingData(BaseModel):
    to: str
    typing: bool
