from __future__ import annotations

import logging
import random
import threading
from typing import Callable, Dict, List, Optional

from app.schemas import RoomSummary
from app.services.scheduler import Scheduler
from game import Rejection, Room, RoomError, Sink
from models import TableConfig

logger = logging.getLogger(__name__)


def normalize_code(code: Optional[str]) -> str:
    """Room codes are case-insensitive: "fam" and " FAM " address the same room."""
    normalized = (code or "").strip().upper()
    if not normalized:
        raise RoomError(Rejection.MALFORMED, "Room code is required")
    return normalized


class RoomRegistry:
    """Owns every live room; rooms are created on first join and dropped once empty.

    Lock order is always registry first, then room, so join/leave cannot
    race with teardown of the same room.
    """

    def __init__(
        self,
        config: Optional[TableConfig] = None,
        scheduler: Optional[Scheduler] = None,
        sink: Optional[Sink] = None,
        rng_factory: Optional[Callable[[], random.Random]] = None,
    ):
        self.config = config or TableConfig()
        self.scheduler = scheduler
        self.sink = sink
        self._rng_factory = rng_factory
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None

    def get(self, code: str) -> Optional[Room]:
        try:
            key = normalize_code(code)
        except RoomError:
            return None
        with self._lock:
            return self._rooms.get(key)

    def get_or_create(self, code: str) -> Room:
        key = normalize_code(code)
        with self._lock:
            return self._get_or_create_locked(key)

    def _get_or_create_locked(self, key: str) -> Room:
        room = self._rooms.get(key)
        if room is None:
            room = Room(
                key,
                config=self.config,
                scheduler=self.scheduler,
                sink=self.sink,
                rng=self._rng_factory() if self._rng_factory else None,
            )
            self._rooms[key] = room
            logger.info("Room %s created", key)
        return room

    def remove(self, code: str) -> Optional[Room]:
        key = normalize_code(code)
        with self._lock:
            room = self._rooms.pop(key, None)
        if room is not None:
            room.close()
            logger.info("Room %s removed", key)
        return room

    def join(self, code: str, identity: str, name: str) -> tuple[Room, int]:
        key = normalize_code(code)
        with self._lock:
            room = self._get_or_create_locked(key)
            try:
                seat_index = room.join(identity, name)
            except RoomError:
                if not room.seats:
                    self._rooms.pop(key, None)
                raise
            return room, seat_index

    def leave(self, code: str, identity: str) -> bool:
        """Detach ``identity`` from the room; returns True when the room was torn down."""
        key = normalize_code(code)
        with self._lock:
            room = self._rooms.get(key)
            if room is None:
                return False
            room.leave(identity)
            if not room.is_empty:
                return False
            self._rooms.pop(key, None)
            room.close()
        logger.info("Room %s removed (empty)", key)
        return True

    def summaries(self) -> List[RoomSummary]:
        with self._lock:
            rooms = list(self._rooms.values())
        return [room.summary() for room in rooms]
