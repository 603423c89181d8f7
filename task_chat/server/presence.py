"""Broadcast of the online user set to every connected client."""
from typing import Any, List, Protocol

from ..shared.dto import ONLINE_USERS_EVENT
from .logging_config import configure_logging

logger = configure_logging()


class PresenceSource(Protocol):
    def all_user_ids(self) -> List[str]:
        ...


class PresenceBroadcaster:
    """Emits the current online set as a single event to all clients.

    ``source`` is the local connection registry by default. A shared presence
    store only has to expose ``all_user_ids()`` to take its place.
    """

    def __init__(self, sio: Any, source: PresenceSource) -> None:
        self.sio = sio
        self.source = source

    def online_user_ids(self) -> List[str]:
        return self.source.all_user_ids()

    async def broadcast_online_users(self) -> List[str]:
        user_ids = self.online_user_ids()
        try:
            await self.sio.emit(ONLINE_USERS_EVENT, user_ids)
        except Exception:  # noqa: BLE001
            logger.exception("PRESENCE_BROADCAST_FAIL online=%d", len(user_ids))
        else:
            logger.debug("PRESENCE_BROADCAST online=%s", user_ids)
        return user_ids
