import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Admin phase skipping (socket + /api/admin)
    ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rooms
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "12"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    DEFAULT_ROUNDS = int(os.environ.get("DEFAULT_ROUNDS", "5"))
    MAX_ROUNDS = int(os.environ.get("MAX_ROUNDS", "20"))

    # Phase timers
    LOBBY_COUNTDOWN_SEC = int(os.environ.get("LOBBY_COUNTDOWN_SEC", "4"))
    WRITING_TURN_SEC = int(os.environ.get("WRITING_TURN_SEC", "30"))
    DISCUSSION_SEC = int(os.environ.get("DISCUSSION_SEC", "120"))
    VOTING_SEC = int(os.environ.get("VOTING_SEC", "30"))
    RESULTS_SEC = int(os.environ.get("RESULTS_SEC", "5"))
    MATCH_END_SEC = int(os.environ.get("MATCH_END_SEC", "30"))

    # Art sourcing
    ART_API_BASE = os.environ.get(
        "ART_API_BASE", "https://collectionapi.metmuseum.org/public/collection/v1"
    )
    ART_PLACEHOLDER_BASE = os.environ.get("ART_PLACEHOLDER_BASE", "https://loremflickr.com/800/600")
    ART_TIMEOUT_SEC = float(os.environ.get("ART_TIMEOUT_SEC", "10"))

    # Winner reward webhook (empty base disables it)
    REWARD_API_BASE = os.environ.get("REWARD_API_BASE", "")
    REWARD_GAME_SECRET = os.environ.get("REWARD_GAME_SECRET", "")
    REWARD_TIMEOUT_SEC = float(os.environ.get("REWARD_TIMEOUT_SEC", "10"))
