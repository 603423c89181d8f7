"""Socket.IO entry point for the live chat.

Clients connect with ``auth: { userId }`` (the ``userId`` query parameter is
accepted as a fallback). Connections without an identifier are refused. Once
accepted, a connection is registered, every client receives the new online
set, and ``new_message`` events are handed to the relay.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs

from pydantic import ValidationError

from ..shared.dto import NEW_MESSAGE_EVENT, ChatMessage
from .logging_config import configure_logging
from .presence import PresenceBroadcaster
from .registry import Connection, ConnectionRegistry
from .relay import MessageRelay, MessageStore
from .schemas import LiveChatMessageIn

logger = configure_logging()

Identify = Callable[[Dict[str, Any], Any], Optional[str]]


def _query_param(environ: Dict[str, Any], name: str) -> Optional[str]:
    # ASGI passes the scope with ``query_string: bytes``, WSGI a ``QUERY_STRING: str``,
    # and some servers nest the scope under ``asgi.scope``.
    scope: Any = environ
    if isinstance(environ, dict) and isinstance(environ.get("asgi.scope"), dict):
        scope = environ["asgi.scope"]

    query_string: str | bytes = ""
    if isinstance(scope, dict):
        query_string = scope.get("query_string") or scope.get("QUERY_STRING") or ""
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    value = parse_qs(str(query_string)).get(name, [None])[0]
    return value or None


def _clean(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        value = str(value).strip()
        return value or None
    return None


def handshake_user_id(environ: Dict[str, Any], auth: Any) -> Optional[str]:
    """Trust the identifier the client supplied in its handshake."""
    if isinstance(auth, dict):
        user_id = _clean(auth.get("userId"))
        if user_id:
            return user_id
    return _clean(_query_param(environ, "userId"))


def token_identity(verify: Callable[[str], Optional[Any]]) -> Identify:
    """Build an identifier resolver that maps a session token through ``verify``."""

    def identify(environ: Dict[str, Any], auth: Any) -> Optional[str]:
        token = None
        if isinstance(auth, dict):
            token = _clean(auth.get("token"))
        token = token or _query_param(environ, "token")
        if not token:
            return None
        return _clean(verify(token))

    return identify


class ChatGateway:
    """Accepts connections and wires them to the registry, presence and relay."""

    def __init__(
        self,
        sio: Any,
        registry: Optional[ConnectionRegistry] = None,
        store: Optional[MessageStore] = None,
        identify: Identify = handshake_user_id,
    ) -> None:
        self.sio = sio
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.presence = PresenceBroadcaster(sio, self.registry)
        self.relay = MessageRelay(sio, self.registry, store)
        self.identify = identify
        # Only the client-asserted identity mode relays a claimed senderId as-is.
        self.trust_sender = identify is handshake_user_id
        # sid -> connection, for sessions that passed the handshake and have not closed
        self._active: Dict[str, Connection] = {}

    def attach(self) -> "ChatGateway":
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on(NEW_MESSAGE_EVENT, self.on_new_message)
        return self

    def online_user_ids(self) -> List[str]:
        return self.presence.online_user_ids()

    def is_active(self, sid: str) -> bool:
        return sid in self._active

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Any = None) -> None:
        user_id = self.identify(environ, auth)
        if not user_id:
            logger.warning("CHAT_REJECTED sid=%s reason=missing_user_id", sid)
            raise ConnectionRefusedError("unauthorized")

        connection = Connection(sid=sid, user_id=user_id)
        self._active[sid] = connection
        previous = self.registry.register(user_id, connection)
        if previous is not None:
            logger.info("CHAT_REPLACED user_id=%s old_sid=%s new_sid=%s", user_id, previous.sid, sid)
        logger.info("CHAT_CONNECT user_id=%s sid=%s", user_id, sid)
        await self.presence.broadcast_online_users()

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        connection = self._active.pop(sid, None)
        if connection is None:
            return
        if not self.registry.unregister(connection.user_id, connection):
            logger.info("CHAT_STALE_DISCONNECT user_id=%s sid=%s", connection.user_id, sid)
            return
        logger.info("CHAT_DISCONNECT user_id=%s sid=%s reason=%s", connection.user_id, sid, reason)
        await self.presence.broadcast_online_users()

    async def on_new_message(self, sid: str, data: Any) -> None:
        connection = self._active.get(sid)
        if connection is None:
            logger.debug("CHAT_IGNORED sid=%s reason=inactive", sid)
            return

        raw = data.get("message") if isinstance(data, dict) else None
        if not isinstance(raw, dict):
            logger.warning("CHAT_INVALID_MESSAGE user_id=%s reason=missing_message", connection.user_id)
            return
        try:
            incoming = LiveChatMessageIn.model_validate(raw)
        except ValidationError as exc:
            logger.warning("CHAT_INVALID_MESSAGE user_id=%s errors=%s", connection.user_id, exc.error_count())
            return

        sender_id = incoming.sender_id or connection.user_id
        if not self.trust_sender and sender_id != connection.user_id:
            logger.warning(
                "CHAT_SENDER_OVERRIDDEN user_id=%s claimed_sender_id=%s", connection.user_id, sender_id
            )
            sender_id = connection.user_id

        message = ChatMessage(
            sender_id=sender_id,
            recipient_id=incoming.recipient_id,
            content=incoming.content,
        )
        await self.relay.relay(message, connection)
