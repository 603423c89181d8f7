"""In-process registry of live chat connections."""
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Connection:
    """One live Socket.IO session and the user identifier it asserted."""

    sid: str
    user_id: str


class ConnectionRegistry:
    """Maps a user identifier to the connection it is currently reachable on.

    One entry per identifier: registering again under the same identifier
    replaces the stored connection without closing the old one.
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(self, user_id: str, connection: Connection) -> Optional[Connection]:
        """Store ``connection`` for ``user_id`` and return the one it displaced."""
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        return previous

    def unregister(self, user_id: str, connection: Connection) -> bool:
        """Remove the entry only if ``connection`` is still the one on record."""
        if self._connections.get(user_id) is not connection:
            return False
        del self._connections[user_id]
        return True

    def lookup(self, user_id: str) -> Optional[Connection]:
        return self._connections.get(user_id)

    def all_user_ids(self) -> List[str]:
        return list(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._connections
