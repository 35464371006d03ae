"""In-process registry of live sessions per user."""
from __future__ import annotations

import logging

from messaging_service.application.ports.bus import SessionHandle

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Maps a user id to the set of its currently open connections.

    Only connect/disconnect mutate it. Readers get a tuple snapshot, so a
    fan-out that awaits between sends never iterates a set that a
    disconnect is changing underneath it.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, set[SessionHandle]] = {}

    def add(self, user_id: str, handle: SessionHandle) -> None:
        self._sessions.setdefault(user_id, set()).add(handle)
        logger.debug(
            "Session registered: %s (sessions=%d, users=%d)",
            user_id, len(self._sessions[user_id]), len(self._sessions),
        )

    def remove(self, user_id: str, handle: SessionHandle) -> bool:
        """Drop one handle. Returns True if the user has no sessions left."""
        handles = self._sessions.get(user_id)
        if not handles:
            return False
        handles.discard(handle)
        if handles:
            return False
        del self._sessions[user_id]
        logger.debug("User %s is now offline", user_id)
        return True

    def handles(self, user_id: str) -> tuple[SessionHandle, ...]:
        return tuple(self._sessions.get(user_id, ()))

    def is_online(self, user_id: str) -> bool:
        return bool(self._sessions.get(user_id))

    def online_count(self) -> int:
        return len(self._sessions)
