"""In-process registry of live connections per identity."""
from __future__ import annotations

import logging
from collections.abc import Hashable
from typing import Generic, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

H = TypeVar("H", bound=Hashable)


class PresenceRegistry(Generic[H]):
    """Maps each online identity to the set of its live connection handles.

    An identity may hold several connections at once (multi-device). It is
    online while that set is non-empty; the entry is removed as soon as the
    last handle goes. Every method is synchronous so the maps are never
    observed half-updated from the event loop.
    """

    def __init__(self) -> None:
        self._connections: dict[UUID, set[H]] = {}

    def register(self, identity_id: UUID, handle: H) -> bool:
        """Add a handle. Return True if the identity just came online."""
        handles = self._connections.get(identity_id)
        if handles is None:
            self._connections[identity_id] = {handle}
            logger.debug("Presence online: %s", identity_id)
            return True
        handles.add(handle)
        return False

    def unregister(self, identity_id: UUID, handle: H) -> bool:
        """Remove a handle. Return True if the identity just went offline."""
        handles = self._connections.get(identity_id)
        if not handles or handle not in handles:
            return False
        handles.discard(handle)
        if handles:
            return False
        del self._connections[identity_id]
        logger.debug("Presence offline: %s", identity_id)
        return True

    def is_online(self, identity_id: UUID) -> bool:
        return identity_id in self._connections

    def online_identities(self) -> set[UUID]:
        return set(self._connections)

    def connections(self, identity_id: UUID) -> list[H]:
        return list(self._connections.get(identity_id, ()))

    def all_connections(self) -> list[H]:
        return [h for handles in self._connections.values() for h in handles]

    def connection_count(self) -> int:
        return sum(len(handles) for handles in self._connections.values())

    def clear(self) -> None:
        self._connections.clear()
