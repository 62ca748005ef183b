from __future__ import annotations

import itertools
import random

import pytest

from artspy.game.engine import GameEngine
from artspy.game.models import ArtPair, Timings
from artspy.game.registry import RoomRegistry


class ManualScheduler:
    """Fake clock: callbacks run only when the test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._ids = itertools.count()
        self._pending: dict[int, tuple[float, int, object]] = {}
        self.spawned: list[tuple[object, tuple]] = []

    def schedule(self, delay, callback):
        handle = next(self._ids)
        self._pending[handle] = (self.now + delay, handle, callback)
        return handle

    def cancel(self, handle) -> None:
        self._pending.pop(handle, None)

    def spawn(self, fn, *args) -> None:
        self.spawned.append((fn, args))
        fn(*args)

    @property
    def live(self) -> int:
        return len(self._pending)

    def advance(self, seconds: float) -> None:
        end = self.now + seconds
        while True:
            due = [(at, handle) for at, handle, _ in self._pending.values() if at <= end]
            if not due:
                break
            at, handle = min(due)
            _, _, callback = self._pending.pop(handle)
            self.now = at
            callback()
        self.now = end


class RecordingBroadcaster:
    def __init__(self) -> None:
        self.sent: list[tuple[str, object, str | None]] = []
        self.memberships: set[tuple[str, str]] = set()

    def emit(self, event, payload, to=None) -> None:
        self.sent.append((event, payload, to))

    def enter(self, sid, code) -> None:
        self.memberships.add((sid, code))

    def leave(self, sid, code) -> None:
        self.memberships.discard((sid, code))

    def events(self, name: str, to: str | None = ...) -> list:
        return [p for e, p, t in self.sent if e == name and (to is ... or t == to)]

    def last(self, name: str, to: str | None = ...):
        found = self.events(name, to)
        return found[-1] if found else None

    def clear(self) -> None:
        self.sent.clear()


class StubArt:
    def __init__(self) -> None:
        self.prefetch_calls: list[int] = []
        self.emergency_calls = 0
        self.short_by = 0

    def prefetch(self, rounds: int) -> list[ArtPair]:
        self.prefetch_calls.append(rounds)
        return [
            ArtPair(innocent=f"https://img/{i}/a.jpg", impostor=f"https://img/{i}/b.jpg", theme="Portrait")
            for i in range(rounds - self.short_by)
        ]

    def emergency_pair(self) -> ArtPair:
        self.emergency_calls += 1
        return ArtPair(innocent="https://img/emergency/a.jpg", impostor="https://img/emergency/b.jpg", theme="Landscape")


class RecordingRewards:
    def __init__(self) -> None:
        self.notified: list[str] = []

    def notify_winner(self, username: str) -> bool:
        self.notified.append(username)
        return True


TIMINGS = Timings()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def art():
    return StubArt()


@pytest.fixture
def rewards():
    return RecordingRewards()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def engine(scheduler, broadcaster, art, rewards, rng):
    return GameEngine(
        registry=RoomRegistry(rng=rng),
        scheduler=scheduler,
        broadcaster=broadcaster,
        art=art,
        rewards=rewards,
        rng=rng,
        timings=TIMINGS,
        admin_secret="letmein",
    )


@pytest.fixture
def lobby(engine):
    """Factory: a room with ``n`` players p0..p(n-1); p0 owns it."""

    def _make(n: int = 2, rounds: int = 1):
        room = engine.create_room("p0", "player0", rounds=rounds)
        for i in range(1, n):
            engine.join_room(f"p{i}", f"player{i}", room.code)
        return room

    return _make


@pytest.fixture
def started(engine, lobby):
    """Factory: a room that has begun round 1 and sits in WRITING."""

    def _make(n: int = 3, rounds: int = 1):
        room = lobby(n, rounds)
        engine.start_game("p0", room.code)
        return room

    return _make


def finish_writing(engine, room) -> None:
    while room.state.phase == "writing":
        writer_id = room.state.turn_order[room.state.turn_index]
        engine.submit_word(writer_id, room.code, f"clue-{writer_id}")


def skip_discussion(engine, room) -> None:
    for p in list(room.players):
        engine.skip_discussion(p.id, room.code)
