from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from messaging_service.application.dto.conversation import UserProfile
from messaging_service.domain.entities.message import PostSnapshot


class UserDirectory(Protocol):
    async def get_profiles(self, user_ids: Sequence[str]) -> dict[str, UserProfile]:
        """Return profiles keyed by id. Unknown ids are simply absent."""
        ...


class PostDirectory(Protocol):
    async def get_snapshot(self, post_id: str) -> PostSnapshot | None: ...
