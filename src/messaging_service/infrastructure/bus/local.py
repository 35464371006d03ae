"""In-process event bus: fan-out straight to this process's sessions."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from messaging_service.application.ports.bus import SessionHandle
from messaging_service.infrastructure.ws.registry import SessionRegistry

logger = logging.getLogger(__name__)


class LocalEventBus:
    """Implements application.ports.bus.EventBus for a single process."""

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    def subscribe(self, identity: str, handle: SessionHandle) -> None:
        self._registry.add(identity, handle)

    def unsubscribe(self, identity: str, handle: SessionHandle) -> None:
        self._registry.remove(identity, handle)

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        targets: Iterable[str],
    ) -> None:
        await self.deliver(event_type, payload, targets)

    async def deliver(
        self,
        event_type: str,
        payload: dict[str, Any],
        targets: Iterable[str],
    ) -> int:
        """Send to every handle registered right now. Returns sends that succeeded."""
        delivered = 0
        for identity in dict.fromkeys(targets):
            handles = self._registry.handles(identity)
            if not handles:
                logger.debug("%s offline, %s dropped", identity, event_type)
                continue
            for handle in handles:
                try:
                    await handle.send(event_type, payload)
                    delivered += 1
                except Exception:
                    logger.warning(
                        "Dropping dead session of %s after failed %s", identity, event_type,
                        exc_info=True,
                    )
                    self._registry.remove(identity, handle)
        return delivered
