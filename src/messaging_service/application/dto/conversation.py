from __future__ import annotations

from dataclasses import dataclass

from messaging_service.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class ConversationRow:
    """One aggregation row as read from the store, before profile resolution."""

    correspondent_id: str
    last_message: Message
    unread_count: int


@dataclass(frozen=True, slots=True)
class UserProfile:
    user_id: str
    username: str
    avatar_url: str | None = None
    role: str | None = None
    missing: bool = False

    @classmethod
    def placeholder(cls, user_id: str) -> UserProfile:
        """Stand-in for a correspondent the directory no longer knows."""
        return cls(user_id=user_id, username="Deleted user", missing=True)


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    user: UserProfile
    last_message: Message
    unread_count: int
