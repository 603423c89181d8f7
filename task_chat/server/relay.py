"""Point-to-point relay of live chat messages."""
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, List, Optional

from ..shared.dto import NEW_MESSAGE_EVENT, ChatMessage
from .config import CHAT_HISTORY_LIMIT
from .logging_config import configure_logging
from .registry import Connection, ConnectionRegistry

logger = configure_logging()


class MessageStore(ABC):
    """Where relayed messages are kept for the lifetime of the process."""

    @abstractmethod
    def append(self, message: ChatMessage) -> None:
        ...

    @abstractmethod
    def all(self) -> List[ChatMessage]:
        ...


class InMemoryMessageStore(MessageStore):
    """Bounded buffer; the oldest message is evicted once the limit is hit."""

    def __init__(self, max_messages: Optional[int] = CHAT_HISTORY_LIMIT) -> None:
        self._messages: Deque[ChatMessage] = deque(maxlen=max_messages)

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def all(self) -> List[ChatMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)


class MessageRelay:
    def __init__(self, sio: Any, registry: ConnectionRegistry, store: Optional[MessageStore] = None) -> None:
        self.sio = sio
        self.registry = registry
        self.store = store if store is not None else InMemoryMessageStore()

    async def relay(self, message: ChatMessage, sender: Connection) -> bool:
        """Store ``message``, forward it to the recipient if online and echo it to the sender.

        Returns True when the recipient was online. An offline recipient is
        not an error: the message stays in the store and is never retried.
        """
        self.store.append(message)
        payload = {"message": message.to_payload()}

        recipient = self.registry.lookup(message.recipient_id)
        if recipient is not None:
            await self._emit(payload, recipient)
            logger.info(
                "CHAT_RELAY sender_id=%s recipient_id=%s message_id=%s",
                message.sender_id,
                message.recipient_id,
                message.id,
            )
        else:
            logger.info(
                "CHAT_UNDELIVERED sender_id=%s recipient_id=%s message_id=%s reason=offline",
                message.sender_id,
                message.recipient_id,
                message.id,
            )

        await self._emit(payload, sender)
        return recipient is not None

    async def _emit(self, payload: dict, connection: Connection) -> None:
        try:
            await self.sio.emit(NEW_MESSAGE_EVENT, payload, to=connection.sid)
        except Exception:  # noqa: BLE001
            logger.warning("CHAT_EMIT_FAIL user_id=%s sid=%s", connection.user_id, connection.sid, exc_info=True)
