"""Redis Pub/Sub bus: lets several API processes share per-user fan-out."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from messaging_service.application.ports.bus import SessionHandle
from messaging_service.infrastructure.bus.local import LocalEventBus
from messaging_service.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisEventBus:
    """Implements application.ports.bus.EventBus across processes.

    Publishing goes through Redis; each process delivers what it receives to
    its own sessions. Pub/Sub does not persist anything, so delivery stays
    at-most-once.
    """

    def __init__(self, redis: aioredis.Redis, channel: str, local: LocalEventBus) -> None:
        self._redis = redis
        self._channel = channel
        self._local = local

    def subscribe(self, identity: str, handle: SessionHandle) -> None:
        self._local.subscribe(identity, handle)

    def unsubscribe(self, identity: str, handle: SessionHandle) -> None:
        self._local.unsubscribe(identity, handle)

    async def publish(
        self,
        event_type: str,
        payload: dict[str, Any],
        targets: Iterable[str],
    ) -> None:
        raw = serialize_event(event_type, list(dict.fromkeys(targets)), payload)
        await self._redis.publish(self._channel, raw)

    async def on_remote_event(self, raw: str | bytes) -> None:
        event_type, targets, payload = deserialize_event(raw)
        await self._local.deliver(event_type, payload, targets)


OnMessageCallback = Callable[[str | bytes], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches events.

    A dropped Redis connection is retried with backoff. Whatever was
    published while resubscribing is lost.
    """

    RETRY_INITIAL = 0.5
    RETRY_MAX = 15.0

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnMessageCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self._backoff = self.RETRY_INITIAL

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
                return
            except (RedisConnectionError, RedisTimeoutError) as exc:
                logger.warning(
                    "Pub/Sub on %s lost (%s), resubscribing in %.1fs",
                    self._channel, exc, self._backoff,
                )
                await asyncio.sleep(self._backoff)
                self._backoff = min(self._backoff * 2, self.RETRY_MAX)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(self._channel)
            self._backoff = self.RETRY_INITIAL
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    await self._callback(message["data"])
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await pubsub.aclose()
