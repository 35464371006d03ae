from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    text: str | None = None
    media_url: str | None = None
    shared_post_id: str | None = None
    client_msg_id: UUID | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    @property
    def has_content(self) -> bool:
        return self.has_text or bool(self.media_url) or bool(self.shared_post_id)
