from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from messaging_service.api.middleware.correlation_id import CorrelationIdMiddleware
from messaging_service.api.middleware.metrics import RequestTimingMiddleware
from messaging_service.api.v1.routers import (
    conversations,
    health,
    messages,
    ws,
)
from messaging_service.application.exceptions import AppError, AuthenticationError
from messaging_service.config import settings
from messaging_service.infrastructure.bus.local import LocalEventBus
from messaging_service.infrastructure.bus.redis_pubsub import (
    RedisEventBus,
    RedisPubSubSubscriber,
)
from messaging_service.infrastructure.db.session import dispose_engine
from messaging_service.infrastructure.directory.http_posts import HttpPostDirectory
from messaging_service.infrastructure.directory.http_users import HttpUserDirectory
from messaging_service.infrastructure.ws.registry import SessionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    subscriber: RedisPubSubSubscriber | None = None
    if settings.EVENT_BUS_BACKEND == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        bus = RedisEventBus(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            LocalEventBus(app.state.sessions),
        )
        subscriber = RedisPubSubSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            bus.on_remote_event,
        )
        await subscriber.start()
        app.state.event_bus = bus
        logger.info("Realtime events fan out through Redis channel %s", settings.REDIS_PUBSUB_CHANNEL)
    else:
        logger.info("Realtime events delivered in-process only")

    yield

    if subscriber is not None:
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    for client in app.state.http_clients:
        await client.aclose()
    await dispose_engine()


def _directory_client(base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(settings.DIRECTORY_TIMEOUT_SECONDS),
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Direct Messaging Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.sessions = SessionRegistry()
    app.state.event_bus = LocalEventBus(app.state.sessions)

    users_http = _directory_client(settings.USERS_API_URL)
    posts_http = _directory_client(settings.POSTS_API_URL)
    app.state.http_clients = [users_http, posts_http]
    app.state.user_directory = HttpUserDirectory(users_http, settings.DIRECTORY_SERVICE_TOKEN)
    app.state.post_directory = HttpPostDirectory(posts_http, settings.DIRECTORY_SERVICE_TOKEN)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
