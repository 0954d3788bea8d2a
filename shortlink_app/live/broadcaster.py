import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Set

from shortlink_app.logging_config import get_logger
from shortlink_app.schemas.live import ClickUpdate

logger = get_logger(__name__)

URL_CLICKED_EVENT = "url-clicked"


class LiveConnection(Protocol):
    """Anything we can push JSON to; starlette's WebSocket qualifies"""

    async def send_json(self, data: Any) -> None:
        ...


@dataclass(frozen=True)
class PublishOutcome:
    delivered: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.error is None


class ClickBroadcaster:
    """
    Registry of live connections grouped by owner id ("rooms").

    A connection belongs to at most one room, and at most once, so joining
    again is a no-op and can never cause a duplicate delivery. The lock only
    guards the two maps; sends happen on a snapshot outside of it.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[LiveConnection]] = {}
        self._memberships: Dict[LiveConnection, str] = {}
        self._lock = threading.Lock()

    def join(self, connection: LiveConnection, owner_id: str) -> bool:
        """
        Put connection in owner_id's room, leaving any previous room.

        Returns:
            False when the connection was already in that room
        """
        with self._lock:
            current = self._memberships.get(connection)
            if current == owner_id:
                return False
            if current is not None:
                self._discard(connection, current)
            self._rooms.setdefault(owner_id, set()).add(connection)
            self._memberships[connection] = owner_id
        logger.debug("Connection %s joined room %s", id(connection), owner_id)
        return True

    def leave(self, connection: LiveConnection, owner_id: str) -> bool:
        """Returns False when the connection was not in that room"""
        with self._lock:
            if self._memberships.get(connection) != owner_id:
                return False
            self._discard(connection, owner_id)
        logger.debug("Connection %s left room %s", id(connection), owner_id)
        return True

    def disconnect(self, connection: LiveConnection) -> None:
        with self._lock:
            owner_id = self._memberships.get(connection)
            if owner_id is not None:
                self._discard(connection, owner_id)

    def room_of(self, connection: LiveConnection) -> Optional[str]:
        with self._lock:
            return self._memberships.get(connection)

    def room_size(self, owner_id: str) -> int:
        with self._lock:
            return len(self._rooms.get(owner_id, ()))

    def _discard(self, connection: LiveConnection, owner_id: str) -> None:
        # Caller holds the lock
        room = self._rooms.get(owner_id)
        if room is not None:
            room.discard(connection)
            if not room:
                del self._rooms[owner_id]
        self._memberships.pop(connection, None)

    async def publish(self, owner_id: str, url_id: str, clicks: int) -> PublishOutcome:
        """
        Send a url-clicked event to every connection in owner_id's room.

        Fire-and-forget: nobody connected means nobody is told, and nothing
        is kept for later. A connection whose send fails is dropped.
        """
        with self._lock:
            targets = list(self._rooms.get(owner_id, ()))
        if not targets:
            return PublishOutcome()

        update = ClickUpdate(url_id=url_id, clicks=clicks, timestamp=datetime.now(timezone.utc))
        message = {
            "event": URL_CLICKED_EVENT,
            "data": update.model_dump(mode="json", by_alias=True),
        }

        results = await asyncio.gather(
            *(connection.send_json(message) for connection in targets),
            return_exceptions=True,
        )

        failed = 0
        for connection, result in zip(targets, results):
            if isinstance(result, Exception):
                failed += 1
                logger.info("Dropping live connection %s: %s", id(connection), result)
                self.disconnect(connection)

        return PublishOutcome(delivered=len(targets) - failed, failed=failed)
