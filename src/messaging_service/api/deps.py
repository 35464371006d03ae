"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import AuthenticationError
from messaging_service.application.ports.auth import TokenVerifier
from messaging_service.application.ports.bus import EventBus
from messaging_service.application.ports.directory import PostDirectory, UserDirectory
from messaging_service.config import settings
from messaging_service.infrastructure.auth.hs256_verifier import HS256Verifier
from messaging_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from messaging_service.infrastructure.db.session import AsyncSessionLocal
from messaging_service.infrastructure.db.uow import SqlAlchemyUoW

_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with SqlAlchemyUoW(AsyncSessionLocal()) as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_event_bus(conn: HTTPConnection) -> EventBus:
    return conn.app.state.event_bus


EventBusDep = Annotated[EventBus, Depends(get_event_bus)]


def get_user_directory(conn: HTTPConnection) -> UserDirectory:
    return conn.app.state.user_directory


UserDirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]


def get_post_directory(conn: HTTPConnection) -> PostDirectory:
    return conn.app.state.post_directory


PostDirectoryDep = Annotated[PostDirectory, Depends(get_post_directory)]
