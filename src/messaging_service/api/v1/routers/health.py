from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from messaging_service.infrastructure.db.session import ping_database

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, str | int]:
    return {"status": "ok", "online_users": request.app.state.sessions.online_count()}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Postgres always; Redis only when the bus runs through it."""
    checks: dict[str, str] = {}

    try:
        await ping_database()
        checks["postgres"] = "ok"
    except Exception as exc:  # noqa: BLE001
        checks["postgres"] = str(exc)

    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:  # noqa: BLE001
            checks["redis"] = str(exc)

    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "unavailable", "checks": checks},
    )
