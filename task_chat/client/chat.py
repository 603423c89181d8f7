"""Live chat client over Socket.IO."""
from typing import Callable, List, Optional

import socketio

from ..shared.dto import NEW_MESSAGE_EVENT, ONLINE_USERS_EVENT, ChatMessage


class ChatClient:
    """Keeps the latest online set and every message echoed or delivered to us."""

    def __init__(
        self,
        server_url: str,
        on_message: Optional[Callable[[ChatMessage], None]] = None,
        on_presence: Optional[Callable[[List[str]], None]] = None,
        sio: Optional[socketio.Client] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.on_message = on_message
        self.on_presence = on_presence
        self.sio = sio if sio is not None else socketio.Client(reconnection=True, reconnection_attempts=5)
        self.user_id: Optional[str] = None
        self.online_users: List[str] = []
        self.messages: List[ChatMessage] = []

        self.sio.on(ONLINE_USERS_EVENT, self._handle_online_users)
        self.sio.on(NEW_MESSAGE_EVENT, self._handle_new_message)

    def connect(self, user_id: str, token: Optional[str] = None) -> None:
        auth = {"userId": user_id}
        if token:
            auth["token"] = token
        self.user_id = user_id
        self.sio.connect(self.server_url, auth=auth)

    def disconnect(self) -> None:
        self.sio.disconnect()
        self.online_users = []

    @property
    def connected(self) -> bool:
        return bool(self.sio.connected)

    def send_message(self, recipient_id: str, content: str) -> None:
        if not self.connected:
            raise RuntimeError("Client not connected")
        self.sio.emit(
            NEW_MESSAGE_EVENT,
            {"message": {"senderId": self.user_id, "recipientId": recipient_id, "content": content}},
        )

    def conversation_with(self, peer_id: str) -> List[ChatMessage]:
        return [m for m in self.messages if peer_id in (m.sender_id, m.recipient_id)]

    def _handle_online_users(self, user_ids: List[str]) -> None:
        self.online_users = list(user_ids)
        if self.on_presence:
            self.on_presence(self.online_users)

    def _handle_new_message(self, data: dict) -> None:
        message = ChatMessage.from_payload(data["message"])
        self.messages.append(message)
        if self.on_message:
            self.on_message(message)
