"""Shared data transfer objects for the live chat events."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict
import uuid

ONLINE_USERS_EVENT = "users:online"
NEW_MESSAGE_EVENT = "new_message"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ChatMessage:
    sender_id: str
    recipient_id: str
    content: str
    created_at: str = field(default_factory=utc_now_iso)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_payload(self) -> Dict[str, Any]:
        """Wire shape used by the browser client (camelCase keys)."""
        return {
            "id": self.id,
            "senderId": self.sender_id,
            "recipientId": self.recipient_id,
            "content": self.content,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChatMessage":
        return cls(
            id=str(payload["id"]),
            sender_id=str(payload["senderId"]),
            recipient_id=str(payload["recipientId"]),
            content=payload["content"],
            created_at=payload["createdAt"],
        )
