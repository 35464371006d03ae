from __future__ import annotations

from messaging_service.application.dto.message import SendMessageDTO
from messaging_service.application.exceptions import ValidationError


def assert_sendable(sender_id: str, recipient_id: str, content: SendMessageDTO) -> None:
    """Raise before anything is written if the message may not be stored."""
    if not recipient_id:
        raise ValidationError("Recipient required")
    if sender_id == recipient_id:
        raise ValidationError("Cannot send a message to yourself")
    if not content.has_content:
        raise ValidationError("Text, media or a shared post is required")
