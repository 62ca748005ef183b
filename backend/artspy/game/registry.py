from __future__ import annotations

import random
import string
from threading import RLock

from .models import Room


CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_LENGTH = 5


class RoomRegistry:
    """In-memory rooms keyed by code."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._rng = rng or random.Random()

    def _generate_code(self) -> str:
        return "".join(self._rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

    def create(self, owner_id: str, is_public: bool = True, rounds: int = 5) -> Room:
        with self._lock:
            code = self._generate_code()
            while code in self._rooms:
                code = self._generate_code()

            room = Room(code=code, owner_id=owner_id, is_public=is_public, rounds=rounds)
            self._rooms[code] = room
            return room

    def find(self, code: str | None) -> Room | None:
        if not code:
            return None
        with self._lock:
            return self._rooms.get(code.strip().upper())

    def remove(self, code: str) -> bool:
        with self._lock:
            if code in self._rooms:
                del self._rooms[code]
                return True
            return False

    def all(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def find_by_player(self, player_id: str) -> list[Room]:
        return [r for r in self.all() if r.find_player(player_id) is not None]

    def list_public(self) -> list[dict]:
        rooms = []
        for r in self.all():
            if not r.is_public:
                continue
            owner = r.find_player(r.owner_id)
            rooms.append(
                {
                    "code": r.code,
                    "playerCount": len(r.players),
                    "isPublic": r.is_public,
                    "ownerName": owner.username if owner else "Unknown",
                    "phase": r.state.phase,
                }
            )
        return rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return code in self._rooms
