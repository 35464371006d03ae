"""User directory backed by the accounts service REST API."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from messaging_service.application.dto.conversation import UserProfile

logger = logging.getLogger(__name__)


def profile_from_json(user_id: str, data: dict[str, Any]) -> UserProfile:
    return UserProfile(
        user_id=str(data.get("_id") or data.get("id") or user_id),
        username=data.get("username") or "",
        avatar_url=data.get("avatarUrl") or None,
        role=data.get("role") or None,
    )


class HttpUserDirectory:
    """Implements application.ports.directory.UserDirectory."""

    def __init__(self, http: httpx.AsyncClient, service_token: str = "") -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {service_token}"} if service_token else {}

    async def get_profiles(self, user_ids: Sequence[str]) -> dict[str, UserProfile]:
        unique = list(dict.fromkeys(user_ids))
        found = await asyncio.gather(*(self._get_profile(uid) for uid in unique))
        return {uid: profile for uid, profile in zip(unique, found) if profile is not None}

    async def _get_profile(self, user_id: str) -> UserProfile | None:
        try:
            resp = await self._http.get(f"/{quote(user_id, safe='')}", headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("User lookup %s failed: %s", user_id, exc)
            return None
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            logger.warning("User lookup %s returned %d", user_id, resp.status_code)
            return None
        return profile_from_json(user_id, resp.json())
