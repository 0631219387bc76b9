from __future__ import annotations

from typing import NewType

RoomId = NewType("RoomId", str)
