from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol


class SessionHandle(Protocol):
    """One live connection of an authenticated user."""

    async def send(self, event_type: str, data: dict[str, Any]) -> None: ...


class EventBus(Protocol):
    """Best-effort delivery of realtime events to the targets' live sessions.

    Events go only to handles registered at publish time. Nothing is queued
    for offline targets and nothing is retried: a client that missed an
    event reconciles by fetching again.
    """

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        targets: Iterable[str],
    ) -> None: ...

    def subscribe(self, identity: str, handle: SessionHandle) -> None: ...

    def unsubscribe(self, identity: str, handle: SessionHandle) -> None: ...
