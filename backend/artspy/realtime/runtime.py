from __future__ import annotations

from typing import Any, Callable

from flask_socketio import SocketIO


NAMESPACE = "/"


class _Handle:
    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False


class SocketIOScheduler:
    """Timers and background work on the Socket.IO async runtime."""

    def __init__(self, socketio: SocketIO) -> None:
        self._socketio = socketio

    def schedule(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle()

        def _runner() -> None:
            self._socketio.sleep(delay)
            if not handle.cancelled:
                callback()

        self._socketio.start_background_task(_runner)
        return handle

    def cancel(self, handle: _Handle) -> None:
        handle.cancelled = True

    def spawn(self, fn: Callable[..., None], *args: Any) -> None:
        self._socketio.start_background_task(fn, *args)


class SocketIOBroadcaster:
    def __init__(self, socketio: SocketIO) -> None:
        self._socketio = socketio

    def emit(self, event: str, payload: Any, to: str | None = None) -> None:
        self._socketio.emit(event, payload, to=to, namespace=NAMESPACE)

    def enter(self, sid: str, code: str) -> None:
        self._socketio.server.enter_room(sid, code, namespace=NAMESPACE)

    def leave(self, sid: str, code: str) -> None:
        self._socketio.server.leave_room(sid, code, namespace=NAMESPACE)
