from __future__ import annotations

import logging
from typing import Any, Callable

from flask import request
from flask_socketio import SocketIO, emit
from pydantic import ValidationError

from ..game.engine import GameEngine
from ..game.errors import GameError
from . import events


logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, engine: GameEngine) -> None:
    def _parse(model: type[events.E], data: Any) -> events.E | None:
        try:
            return events.parse(model, data)
        except ValidationError as exc:
            logger.debug("Rejected %s payload from %s: %s", model.__name__, request.sid, exc.errors())
            emit("error", {"error": "invalid_payload", "message": "Invalid request."})
            return None

    def _run(action: Callable[[], Any]) -> dict:
        try:
            action()
        except GameError as exc:
            emit("error", exc.to_payload())
            return {"ok": False, "error": exc.code}
        return {"ok": True}

    @socketio.on("create_room")
    def create_room(data):
        payload = _parse(events.CreateRoom, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}

        room = engine.create_room(
            request.sid,
            username=payload.username,
            is_public=payload.is_public,
            rounds=payload.rounds,
        )
        return {"ok": True, "room": room.code}

    @socketio.on("join_room")
    def join_room(data):
        payload = _parse(events.JoinRoom, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.join_room(request.sid, username=payload.username, code=payload.room))

    @socketio.on("get_public_rooms")
    def get_public_rooms(data=None):
        emit("public_rooms_update", engine.list_public_rooms())

    @socketio.on("start_game")
    def start_game(data):
        payload = _parse(events.RoomAction, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.start_game(request.sid, payload.room))

    @socketio.on("kick_player")
    def kick_player(data):
        payload = _parse(events.KickPlayer, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.kick_player(request.sid, payload.room, payload.target_id))

    @socketio.on("submit_word")
    def submit_word(data):
        payload = _parse(events.SubmitWord, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.submit_word(request.sid, payload.room, payload.word))

    @socketio.on("submit_vote")
    def submit_vote(data):
        payload = _parse(events.SubmitVote, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.submit_vote(request.sid, payload.room, payload.target_id))

    @socketio.on("skip_discussion")
    def skip_discussion(data):
        payload = _parse(events.RoomAction, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.skip_discussion(request.sid, payload.room))

    @socketio.on("skip_match_end")
    def skip_match_end(data):
        payload = _parse(events.RoomAction, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.skip_match_end(request.sid, payload.room))

    @socketio.on("toggle_ready")
    def toggle_ready(data):
        payload = _parse(events.RoomAction, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.toggle_ready(request.sid, payload.room))

    @socketio.on("chat_message")
    def chat_message(data):
        payload = _parse(events.ChatMessage, data)
        if payload is None:
            return
        engine.chat_message(request.sid, payload.room, payload.message, username=payload.username)

    @socketio.on("admin_skip_phase")
    def admin_skip_phase(data):
        payload = _parse(events.AdminSkipPhase, data)
        if payload is None:
            return {"ok": False, "error": "invalid_payload"}
        return _run(lambda: engine.admin_skip_phase(payload.room, payload.password))

    @socketio.on("disconnect")
    def on_disconnect(*args):
        engine.disconnect(request.sid)
