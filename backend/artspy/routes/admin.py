from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..game import views
from ..game.errors import GameError, RoomNotFound, Unauthorized

bp = Blueprint("admin", __name__)


def _engine():
    return current_app.extensions["artspy"]


@bp.get("/admin/rooms")
def admin_rooms():
    engine = _engine()
    try:
        engine.check_admin_secret(request.headers.get("X-Admin-Token", ""))
    except Unauthorized as exc:
        return jsonify(exc.to_payload()), 401

    rooms = [views.room_snapshot(r) for r in engine.registry.all()]
    return jsonify({"rooms": rooms})


@bp.post("/admin/rooms/<code>/skip")
def admin_skip(code: str):
    engine = _engine()
    try:
        engine.admin_skip_phase(code, request.headers.get("X-Admin-Token", ""))
    except Unauthorized as exc:
        return jsonify(exc.to_payload()), 401
    except RoomNotFound as exc:
        return jsonify(exc.to_payload()), 404
    except GameError as exc:
        return jsonify(exc.to_payload()), 400

    return jsonify({"ok": True, "room": engine.room_snapshot(code)})
