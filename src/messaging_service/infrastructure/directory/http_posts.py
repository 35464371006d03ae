"""Post lookup for shared-post snapshots."""
from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from messaging_service.domain.entities.message import PostSnapshot

logger = logging.getLogger(__name__)


class HttpPostDirectory:
    """Implements application.ports.directory.PostDirectory."""

    def __init__(self, http: httpx.AsyncClient, service_token: str = "") -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {service_token}"} if service_token else {}

    async def get_snapshot(self, post_id: str) -> PostSnapshot | None:
        resp = await self._http.get(f"/{quote(post_id, safe='')}", headers=self._headers)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
        return PostSnapshot(
            post_id=str(data.get("_id") or data.get("id") or post_id),
            caption=data.get("caption") or "",
            image_url=data.get("imageUrl") or "",
        )
