from __future__ import annotations

import os
import random
import sys
from typing import Any

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.clock import Scheduler
from .game.engine import ArtProvider, Broadcaster, GameEngine, WinnerNotifier
from .game.models import Timings
from .game.registry import RoomRegistry
from .realtime.handlers import register_socketio_handlers
from .realtime.runtime import SocketIOBroadcaster, SocketIOScheduler
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp
from .services.art import ArtSource
from .services.rewards import RewardClient


def _async_mode() -> str:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if env_async_mode:
        return env_async_mode
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(
    test_config: dict[str, Any] | None = None,
    *,
    scheduler: Scheduler | None = None,
    broadcaster: Broadcaster | None = None,
    art: ArtProvider | None = None,
    rewards: WinnerNotifier | None = None,
    rng: random.Random | None = None,
) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE") or _async_mode(),
    )

    rng = rng or random.Random()
    cfg = app.config
    engine = GameEngine(
        registry=RoomRegistry(rng=rng),
        scheduler=scheduler or SocketIOScheduler(socketio),
        broadcaster=broadcaster or SocketIOBroadcaster(socketio),
        art=art
        or ArtSource(
            api_base=cfg["ART_API_BASE"],
            placeholder_base=cfg["ART_PLACEHOLDER_BASE"],
            timeout=cfg["ART_TIMEOUT_SEC"],
            rng=rng,
        ),
        rewards=rewards
        or RewardClient(
            api_base=cfg["REWARD_API_BASE"],
            secret=cfg["REWARD_GAME_SECRET"],
            timeout=cfg["REWARD_TIMEOUT_SEC"],
        ),
        rng=rng,
        timings=Timings.from_config(cfg),
        max_players=cfg["MAX_PLAYERS"],
        min_players=cfg["MIN_PLAYERS"],
        default_rounds=cfg["DEFAULT_ROUNDS"],
        max_rounds=cfg["MAX_ROUNDS"],
        admin_secret=cfg["ADMIN_SECRET"],
    )
    app.extensions["artspy"] = engine

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")

    register_socketio_handlers(socketio, engine)

    return app, socketio
