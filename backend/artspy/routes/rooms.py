from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.errors import RoomNotFound

bp = Blueprint("rooms", __name__)


@bp.get("/rooms")
def list_rooms():
    engine = current_app.extensions["artspy"]
    return jsonify({"rooms": engine.list_public_rooms()})


@bp.get("/rooms/<code>")
def get_room(code: str):
    engine = current_app.extensions["artspy"]
    try:
        return jsonify(engine.room_snapshot(code))
    except RoomNotFound as exc:
        return jsonify(exc.to_payload()), 404
