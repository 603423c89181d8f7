"""Pydantic schemas for request and response bodies."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str


class AuthResponse(BaseModel):
    message: str
    user: UserOut
    token: str


class MessageContent(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message content is required")
        return value


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    recipient_id: int
    content: str
    read: bool
    edited: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class UnreadCount(BaseModel):
    count: int


class OnlineUsers(BaseModel):
    users: List[str]
    count: int


class LiveChatMessageIn(BaseModel):
    """Payload of a ``new_message`` Socket.IO event."""

    model_config = ConfigDict(populate_by_name=True)

    sender_id: Optional[str] = Field(default=None, alias="senderId")
    recipient_id: str = Field(..., alias="recipientId", min_length=1)
    content: str

    @field_validator("sender_id", "recipient_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        if value is None:
            return value
        value = str(value).strip()
        return value or None
