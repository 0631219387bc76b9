from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    CLIENT = "client"
    FREELANCER = "freelancer"
    ADMIN = "admin"


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    IDLE = "idle"
    IN_ROOM = "in_room"
    CLOSED = "closed"
