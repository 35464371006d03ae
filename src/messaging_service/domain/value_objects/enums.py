from __future__ import annotations

from enum import StrEnum


class EventKind(StrEnum):
    MESSAGE_NEW = "message:new"
    TYPING = "typing"
    MESSAGE_READ = "message:read"


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    IDLE = "idle"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"
