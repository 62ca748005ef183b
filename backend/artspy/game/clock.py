from __future__ import annotations

from functools import partial
from typing import Any, Callable, Protocol

from .models import Room


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...

    def spawn(self, fn: Callable[..., None], *args: Any) -> None: ...


class PhaseClock:
    """One-second countdown per room.

    ``arm`` always cancels whatever countdown the room already has, so a room
    never owns more than one live timer. Each tick decrements ``state.timer``;
    at zero the expiry callback runs once.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        on_tick: Callable[[Room], None],
        on_expire: Callable[[Room], None],
    ) -> None:
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._on_expire = on_expire

    def arm(self, room: Room, seconds: int) -> None:
        self.cancel(room)
        room.state.timer = max(0, int(seconds))
        if room.state.timer > 0:
            token = object()
            room.timer_token = token
            self._schedule_tick(room, token)

    def cancel(self, room: Room) -> None:
        if room.timer_handle is not None:
            self._scheduler.cancel(room.timer_handle)
        room.timer_handle = None
        room.timer_token = None

    def _schedule_tick(self, room: Room, token: object) -> None:
        room.timer_handle = self._scheduler.schedule(1.0, partial(self._tick, room, token))

    def _tick(self, room: Room, token: object) -> None:
        with room.lock:
            # Superseded by a later arm/cancel.
            if room.timer_token is not token:
                return

            room.timer_handle = None
            room.state.timer -= 1
            if room.state.timer <= 0:
                room.state.timer = 0
                room.timer_token = None
                self._on_expire(room)
                return

            self._schedule_tick(room, token)
            self._on_tick(room)
