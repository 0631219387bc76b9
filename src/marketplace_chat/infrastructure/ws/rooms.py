"""Per-conversation room membership for live connections."""
from __future__ import annotations

from collections.abc import Hashable
from typing import Generic, TypeVar
from uuid import UUID

from marketplace_chat.domain.value_objects.ids import RoomId

H = TypeVar("H", bound=Hashable)


class ConversationRouter(Generic[H]):
    """Computes conversation room keys and tracks which connections joined them.

    Membership is a listening convenience only. Message delivery goes to every
    connection of both parties whether or not they joined the room.
    """

    def __init__(self) -> None:
        self._members: dict[RoomId, set[H]] = {}
        self._joined: dict[H, set[RoomId]] = {}

    @staticmethod
    def room_id(user_a: UUID, user_b: UUID, project_id: UUID | None = None) -> RoomId:
        low, high = sorted((str(user_a), str(user_b)))
        return RoomId(f"chat:{low}:{high}:{project_id or ''}")

    def join(self, handle: H, room_id: RoomId) -> None:
        self._members.setdefault(room_id, set()).add(handle)
        self._joined.setdefault(handle, set()).add(room_id)

    def leave(self, handle: H, room_id: RoomId) -> None:
        members = self._members.get(room_id)
        if members is not None:
            members.discard(handle)
            if not members:
                del self._members[room_id]
        rooms = self._joined.get(handle)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._joined[handle]

    def drop(self, handle: H) -> None:
        """Remove a connection from every room it joined."""
        for room_id in list(self._joined.get(handle, ())):
            self.leave(handle, room_id)

    def members(self, room_id: RoomId) -> set[H]:
        return set(self._members.get(room_id, ()))

    def rooms_of(self, handle: H) -> set[RoomId]:
        return set(self._joined.get(handle, ()))
