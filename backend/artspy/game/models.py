from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Literal, Mapping


Phase = Literal["lobby", "writing", "discussing", "voting", "results", "match_end"]
Role = Literal["innocent", "impostor"]

LOBBY: Phase = "lobby"
WRITING: Phase = "writing"
DISCUSSING: Phase = "discussing"
VOTING: Phase = "voting"
RESULTS: Phase = "results"
MATCH_END: Phase = "match_end"

INNOCENT: Role = "innocent"
IMPOSTOR: Role = "impostor"


@dataclass
class ArtPair:
    innocent: str
    impostor: str
    theme: str = ""

    def image_for(self, role: Role | None) -> str:
        return self.impostor if role == IMPOSTOR else self.innocent

    def to_dict(self) -> dict:
        return {"innocent": self.innocent, "impostor": self.impostor, "theme": self.theme}


@dataclass
class Player:
    id: str
    username: str
    score: int = 0
    # Per-round
    role: Role | None = None
    word: str | None = None
    vote: str | None = None
    # Per-phase one-shot flags
    is_ready: bool = False
    has_skipped_discussion: bool = False
    has_skipped: bool = False
    is_offline: bool = False

    @property
    def is_active(self) -> bool:
        """Holds a role this round and is still connected."""
        return self.role is not None and not self.is_offline

    def clear_round(self) -> None:
        self.role = None
        self.word = None
        self.vote = None


@dataclass
class PhaseState:
    phase: Phase = LOBBY
    timer: int = 0
    current_round: int = 0
    turn_order: list[str] = field(default_factory=list)
    turn_index: int = 0
    art_cache: list[ArtPair] = field(default_factory=list)
    art_pair: ArtPair | None = None
    starting: bool = False
    winner_award_sent: bool = False


@dataclass
class Room:
    code: str
    owner_id: str
    is_public: bool = True
    rounds: int = 5
    players: list[Player] = field(default_factory=list)
    state: PhaseState = field(default_factory=PhaseState)
    # Live countdown; at most one per room.
    timer_handle: Any = field(default=None, repr=False, compare=False)
    timer_token: object | None = field(default=None, repr=False, compare=False)
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def find_player(self, player_id: str | None) -> Player | None:
        if player_id is None:
            return None
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def online_players(self) -> list[Player]:
        return [p for p in self.players if not p.is_offline]

    def active_players(self) -> list[Player]:
        return [p for p in self.players if p.is_active]

    def purge_offline(self) -> list[Player]:
        removed = [p for p in self.players if p.is_offline]
        self.players = [p for p in self.players if not p.is_offline]
        return removed


@dataclass(frozen=True)
class Timings:
    lobby_countdown: int = 4
    writing_turn: int = 30
    discussion: int = 120
    voting: int = 30
    results: int = 5
    match_end: int = 30

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "Timings":
        return cls(
            lobby_countdown=int(config.get("LOBBY_COUNTDOWN_SEC", cls.lobby_countdown)),
            writing_turn=int(config.get("WRITING_TURN_SEC", cls.writing_turn)),
            discussion=int(config.get("DISCUSSION_SEC", cls.discussion)),
            voting=int(config.get("VOTING_SEC", cls.voting)),
            results=int(config.get("RESULTS_SEC", cls.results)),
            match_end=int(config.get("MATCH_END_SEC", cls.match_end)),
        )
