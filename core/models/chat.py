"""Data models for chatbot conversations."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message.

    Attributes:
        id: Sequence number, strictly increasing within a conversation
        text: Message text
        is_bot: True for assistant replies
        timestamp: When the message was created
    """
    id: int
    text: str
    is_bot: bool
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "is_bot": self.is_bot,
            "timestamp": self.timestamp.isoformat(),
        }
