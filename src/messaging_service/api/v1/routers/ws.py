from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from messaging_service.api.deps import get_verifier
from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import AuthenticationError
from messaging_service.application.ports.bus import EventBus
from messaging_service.config import settings
from messaging_service.infrastructure.ws.protocol import TypingData, WsInbound
from messaging_service.infrastructure.ws.session import WebSocketSession
from messaging_service.services import message_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001


def _extract_token(websocket: WebSocket, token: str | None) -> str:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip()
    return ""


async def _authenticate(token: str) -> Principal | None:
    if not token:
        return None
    try:
        return await get_verifier().verify(token)
    except AuthenticationError:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/messaging")
async def ws_messaging(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    principal = await _authenticate(_extract_token(websocket, token))
    if principal is None:
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return

    bus: EventBus = websocket.app.state.event_bus
    session = WebSocketSession(websocket, principal.user_id)
    await session.accept()
    bus.subscribe(principal.user_id, session)

    heartbeat_task = asyncio.create_task(
        _heartbeat(session), name=f"ws-heartbeat-{session.id}",
    )
    try:
        await _read_loop(session, principal, bus)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.user_id)
    finally:
        heartbeat_task.cancel()
        bus.unsubscribe(principal.user_id, session)
        session.mark_disconnected()
        logger.debug("WS %s closed for %s", session.id, principal.user_id)


async def _heartbeat(session: WebSocketSession) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while session.is_open:
            await asyncio.sleep(interval)
            await session.send("pong", {})
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped for WS %s", session.id, exc_info=True)


async def _read_loop(session: WebSocketSession, principal: Principal, bus: EventBus) -> None:
    while True:
        raw = await session.receive_text()
        session.mark_active()
        try:
            await _dispatch(session, principal, bus, raw)
        finally:
            session.mark_idle()


async def _dispatch(
    session: WebSocketSession,
    principal: Principal,
    bus: EventBus,
    raw: str,
) -> None:
    try:
        frame = WsInbound.model_validate_json(raw)
    except PydanticValidationError:
        await session.send("error", {"code": "invalid_payload"})
        return

    if frame.type == "ping":
        await session.send("pong", {})

    elif frame.type == "typing":
        try:
            data = TypingData.model_validate(frame.data)
        except PydanticValidationError as exc:
            await session.send("error", {"code": "invalid_data", "detail": str(exc)})
            return
        await message_service.relay_typing(principal, data.to, data.typing, bus)

    else:
        await session.send("error", {"code": "unknown_type", "type": frame.type})
