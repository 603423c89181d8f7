"""Client-side models for users and inbox messages."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass
class User:
    id: int
    username: str
    email: str
    role: str = "user"


@dataclass
class InboxMessage:
    id: int
    sender_id: int
    recipient_id: int
    content: str
    read: bool
    edited: bool
    created_at: datetime

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "InboxMessage":
        return cls(
            id=data["id"],
            sender_id=data["sender_id"],
            recipient_id=data["recipient_id"],
            content=data["content"],
            read=data["read"],
            edited=data["edited"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )
