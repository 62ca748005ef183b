from __future__ import annotations

import hmac
import logging
import random
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from . import views
from .clock import PhaseClock, Scheduler
from .errors import (
    GameError,
    InvalidTarget,
    NotEnoughPlayers,
    NotOwner,
    RoomFull,
    RoomNotFound,
    Unauthorized,
    UsernameTaken,
    WrongPhase,
)
from .models import (
    DISCUSSING,
    LOBBY,
    MATCH_END,
    RESULTS,
    VOTING,
    WRITING,
    ArtPair,
    Phase,
    Player,
    Room,
    Timings,
)
from .registry import RoomRegistry
from .scoring import assign_roles, match_winners, resolve_round
from .turns import advance, build_turn_order, is_current_writer, seat_writer


logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    def emit(self, event: str, payload: Any, to: str | None = None) -> None: ...

    def enter(self, sid: str, code: str) -> None: ...

    def leave(self, sid: str, code: str) -> None: ...


class ArtProvider(Protocol):
    def prefetch(self, rounds: int) -> list[ArtPair]: ...

    def emergency_pair(self) -> ArtPair: ...


class WinnerNotifier(Protocol):
    def notify_winner(self, username: str) -> bool: ...


class GameEngine:
    """Drives every room through its phases.

    All three stimulus sources (player actions, timer expiry and
    connectivity changes) enter through public methods here and mutate a
    room only while holding ``room.lock``.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        scheduler: Scheduler,
        broadcaster: Broadcaster,
        art: ArtProvider,
        rewards: WinnerNotifier,
        *,
        rng: random.Random | None = None,
        timings: Timings | None = None,
        max_players: int = 12,
        min_players: int = 2,
        default_rounds: int = 5,
        max_rounds: int = 20,
        admin_secret: str = "",
    ) -> None:
        self.registry = registry
        self.timings = timings or Timings()
        self.max_players = max_players
        self.min_players = min_players
        self.default_rounds = default_rounds
        self.max_rounds = max_rounds
        self._scheduler = scheduler
        self._broadcaster = broadcaster
        self._art = art
        self._rewards = rewards
        self._rng = rng or random.Random()
        self._admin_secret = admin_secret
        self.clock = PhaseClock(scheduler, on_tick=self._emit_timer, on_expire=self._handle_timeout)

    # ------------------------------------------------------------------
    # Broadcasts
    # ------------------------------------------------------------------

    def _emit_timer(self, room: Room) -> None:
        self._broadcaster.emit("timer_update", room.state.timer, to=room.code)

    def _broadcast_state(self, room: Room) -> None:
        self._broadcaster.emit("game_state_update", views.game_state(room), to=room.code)

    def _broadcast_players(self, room: Room) -> None:
        self._broadcaster.emit("player_list_update", views.player_list(room), to=room.code)

    def broadcast_public_rooms(self) -> None:
        self._broadcaster.emit("public_rooms_update", self.registry.list_public())

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _require_room(self, code: str | None) -> Room:
        room = self.registry.find(code)
        if room is None:
            raise RoomNotFound()
        return room

    @contextmanager
    def _guard(self, room: Room) -> Iterator[None]:
        with room.lock:
            try:
                yield
            except GameError:
                raise
            except Exception:
                logger.exception("[%s] Unexpected error in phase %s; returning to lobby", room.code, room.state.phase)
                self._recover(room)

    def _recover(self, room: Room) -> None:
        try:
            self._reset_match(room)
        except Exception:
            logger.exception("[%s] Lobby reset failed; cancelling timer", room.code)
            self.clock.cancel(room)
            room.state.phase = LOBBY
            room.state.starting = False

    def _set_phase(self, room: Room, phase: Phase, seconds: int) -> None:
        changed = room.state.phase != phase
        room.state.phase = phase
        self.clock.arm(room, seconds)
        self._broadcast_state(room)
        if changed:
            logger.info("[%s] Phase -> %s (%ss)", room.code, phase, seconds)
            self.broadcast_public_rooms()

    def _handle_timeout(self, room: Room) -> None:
        with self._guard(room):
            self._on_timeout(room)

    def _on_timeout(self, room: Room) -> None:
        phase = room.state.phase
        if phase == LOBBY:
            if not room.state.starting:
                self._begin_match(room)
        elif phase == WRITING:
            self._advance_turn(room)
        elif phase == DISCUSSING:
            self._start_voting(room)
        elif phase == VOTING:
            self._resolve_votes(room)
        elif phase == RESULTS:
            self._after_results(room)
        elif phase == MATCH_END:
            self._reset_match(room)

    # ------------------------------------------------------------------
    # Rooms and players
    # ------------------------------------------------------------------

    def create_room(self, sid: str, username: str, is_public: bool = True, rounds: int | None = None) -> Room:
        rounds = max(1, min(int(rounds or self.default_rounds), self.max_rounds))
        room = self.registry.create(sid, is_public=is_public, rounds=rounds)
        with self._guard(room):
            room.players.append(Player(id=sid, username=username.strip()))
            self._broadcaster.enter(sid, room.code)
            logger.info("[%s] Room created by %s (public=%s, rounds=%d)", room.code, username, is_public, rounds)
            self._broadcaster.emit("room_joined", views.room_snapshot(room, sid), to=sid)
            self._broadcast_players(room)
        self.broadcast_public_rooms()
        return room

    def join_room(self, sid: str, username: str, code: str) -> Room:
        room = self._require_room(code)
        name = username.strip()
        with self._guard(room):
            if room.find_player(sid) is not None:
                self._broadcaster.emit("room_joined", views.room_snapshot(room, sid), to=sid)
                return room
            if len(room.players) >= self.max_players:
                raise RoomFull(f"Room is full (max {self.max_players} players).")
            if any(p.username.strip().lower() == name.lower() for p in room.players):
                raise UsernameTaken()

            room.players.append(Player(id=sid, username=name))
            self._broadcaster.enter(sid, room.code)
            logger.info("[%s] %s joined", room.code, name)

            self._broadcaster.emit("room_joined", views.room_snapshot(room, sid), to=sid)
            self._broadcast_players(room)
            self._broadcast_state(room)
            # A fresh, unready player breaks a running countdown.
            self._check_lobby_ready(room)
        self.broadcast_public_rooms()
        return room

    def list_public_rooms(self) -> list[dict]:
        return self.registry.list_public()

    def room_snapshot(self, code: str) -> dict:
        room = self._require_room(code)
        with room.lock:
            return views.room_snapshot(room)

    def kick_player(self, sid: str, code: str, target_id: str) -> None:
        room = self._require_room(code)
        with self._guard(room):
            if sid != room.owner_id:
                raise NotOwner()
            if target_id == sid:
                raise InvalidTarget("You cannot kick yourself.")
            target = room.find_player(target_id)
            if target is None:
                raise InvalidTarget()

            was_writer = room.state.phase == WRITING and is_current_writer(room, target_id)

            self._broadcaster.emit("kicked", {"room": room.code}, to=target_id)
            self._broadcaster.leave(target_id, room.code)
            room.players.remove(target)
            logger.info("[%s] %s was kicked", room.code, target.username)

            if was_writer:
                self._advance_turn(room)
            else:
                self._recheck_quorums(room)
            self._broadcast_players(room)
        self.broadcast_public_rooms()

    def disconnect(self, sid: str) -> None:
        for room in self.registry.find_by_player(sid):
            self._leave(room, sid)
        self.broadcast_public_rooms()

    def _leave(self, room: Room, sid: str) -> None:
        with self._guard(room):
            player = room.find_player(sid)
            if player is None:
                return

            if room.state.phase == LOBBY:
                room.players.remove(player)
            else:
                # Keeps score and role until the next rollover purges it.
                player.is_offline = True
            logger.info("[%s] %s disconnected during %s", room.code, player.username, room.state.phase)

            online = room.online_players()
            if not online:
                self.clock.cancel(room)
                room.state.starting = False
                self.registry.remove(room.code)
                logger.info("[%s] Room closed", room.code)
                return

            if room.owner_id == sid:
                room.owner_id = online[0].id
                logger.info("[%s] Owner transferred to %s", room.code, online[0].username)

            if room.state.phase == WRITING and is_current_writer(room, sid):
                self._advance_turn(room)
            else:
                self._recheck_quorums(room)
            self._broadcast_players(room)

    def chat_message(self, sid: str, code: str, message: str, username: str | None = None) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        sender = room.find_player(sid)
        name = (username or "").strip() or (sender.username if sender else "")
        self._broadcaster.emit("chat_message", {"username": name, "message": message}, to=room.code)

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    def toggle_ready(self, sid: str, code: str) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        with self._guard(room):
            if room.state.phase != LOBBY or room.state.starting:
                return
            player = room.find_player(sid)
            if player is None:
                return
            player.is_ready = not player.is_ready
            self._broadcast_players(room)
            self._check_lobby_ready(room)

    def _check_lobby_ready(self, room: Room) -> None:
        if room.state.phase != LOBBY or room.state.starting:
            return

        all_ready = len(room.players) >= self.min_players and all(p.is_ready for p in room.players)
        if all_ready:
            if room.timer_token is None:
                logger.info("[%s] Everyone is ready; starting countdown", room.code)
                self._set_phase(room, LOBBY, self.timings.lobby_countdown)
        elif room.state.timer > 0:
            logger.info("[%s] Readiness broken; countdown cancelled", room.code)
            self._set_phase(room, LOBBY, 0)

    def start_game(self, sid: str, code: str) -> None:
        room = self._require_room(code)
        with self._guard(room):
            if sid != room.owner_id:
                raise NotOwner()
            if room.state.phase != LOBBY:
                raise WrongPhase("The match has already started.")
            if room.state.starting:
                return
            if len(room.players) < self.min_players:
                raise NotEnoughPlayers()
            self._begin_match(room)

    def _begin_match(self, room: Room) -> None:
        state = room.state
        state.starting = True
        state.current_round = 0
        state.winner_award_sent = False
        state.art_cache = []
        logger.info("[%s] Match starting; fetching art for %d rounds", room.code, room.rounds)
        self._set_phase(room, LOBBY, 0)
        self._scheduler.spawn(self._prefetch_and_start, room)

    def _prefetch_and_start(self, room: Room) -> None:
        # Runs without the room lock; the room may change meanwhile.
        try:
            pairs = self._art.prefetch(room.rounds)
        except Exception:
            logger.exception("[%s] Art prefetch failed", room.code)
            pairs = []

        with self._guard(room):
            if self.registry.find(room.code) is not room or not room.state.starting:
                return
            room.state.starting = False
            room.state.art_cache = pairs
            self._next_round(room)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def _next_round(self, room: Room) -> None:
        state = room.state
        room.purge_offline()
        self._broadcast_players(room)

        if len(room.players) < self.min_players:
            logger.warning(
                "[%s] Not enough players for round %d; back to lobby", room.code, state.current_round + 1
            )
            self._reset_match(room)
            return

        state.current_round += 1
        for p in room.players:
            p.clear_round()
            p.is_ready = True
            p.has_skipped_discussion = False

        idx = state.current_round - 1
        pair = state.art_cache[idx] if idx < len(state.art_cache) else None
        if pair is None:
            logger.warning("[%s] Art cache miss for round %d; using emergency art", room.code, state.current_round)
            pair = self._art.emergency_pair()
        state.art_pair = pair

        assign_roles(room.players, self._rng)
        logger.info("[%s] Round %d/%d (%s)", room.code, state.current_round, room.rounds, pair.theme)
        logger.debug("[%s] Roles: %s", room.code, ", ".join(f"{p.username}:{p.role}" for p in room.players))

        for p in room.players:
            self._broadcaster.emit("round_init", {"role": p.role, "imageUrl": pair.image_for(p.role)}, to=p.id)
        self._broadcast_players(room)

        self._start_writing(room)

    def _start_writing(self, room: Room) -> None:
        state = room.state
        state.turn_order = build_turn_order(room.players, self._rng)
        state.turn_index = 0
        for p in room.players:
            p.word = None
        self._start_turn(room)

    def _start_turn(self, room: Room) -> None:
        writer, skipped = seat_writer(room)
        if skipped:
            logger.info("[%s] Skipped absent writers: %s", room.code, ", ".join(skipped))

        if writer is None:
            for p in room.players:
                p.has_skipped_discussion = False
            self._set_phase(room, DISCUSSING, self.timings.discussion)
            self._broadcast_players(room)
            return

        self._set_phase(room, WRITING, self.timings.writing_turn)

    def _advance_turn(self, room: Room) -> None:
        advance(room)
        self._start_turn(room)

    def submit_word(self, sid: str, code: str, word: str) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        with self._guard(room):
            # Out-of-turn or late submissions are dropped.
            if room.state.phase != WRITING or not is_current_writer(room, sid):
                return
            player = room.find_player(sid)
            if player is None:
                return
            player.word = word
            self._advance_turn(room)

    def skip_discussion(self, sid: str, code: str) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        with self._guard(room):
            if room.state.phase != DISCUSSING:
                return
            player = room.find_player(sid)
            if player is None or player.has_skipped_discussion:
                return
            player.has_skipped_discussion = True
            self._broadcast_players(room)
            self._check_discussion_quorum(room)

    def _check_discussion_quorum(self, room: Room) -> None:
        active = room.active_players()
        if not active or all(p.has_skipped_discussion for p in active):
            self._start_voting(room)

    def _start_voting(self, room: Room) -> None:
        self._set_phase(room, VOTING, self.timings.voting)
        # Departures during discussion can leave nobody able to vote.
        self._check_voting_quorum(room)

    def submit_vote(self, sid: str, code: str, target_id: str) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        with self._guard(room):
            if room.state.phase != VOTING:
                return
            voter = room.find_player(sid)
            if voter is None or voter.role is None:
                return
            if room.find_player(target_id) is None:
                raise InvalidTarget()
            voter.vote = target_id
            self._broadcast_players(room)
            self._check_voting_quorum(room)

    def _check_voting_quorum(self, room: Room) -> None:
        active = room.active_players()
        if len(active) < self.min_players or all(p.vote for p in active):
            self._resolve_votes(room)

    def _resolve_votes(self, room: Room) -> None:
        result = resolve_round(room)
        logger.info("[%s] Round %d won by %s", room.code, room.state.current_round, result.winner)
        self._broadcaster.emit("game_over", result.to_payload(), to=room.code)
        self._broadcast_players(room)
        self._set_phase(room, RESULTS, self.timings.results)

    def _after_results(self, room: Room) -> None:
        if room.state.current_round < room.rounds:
            self._next_round(room)
            return

        self.award_match_winners(room)
        for p in room.players:
            p.has_skipped = False
        self._set_phase(room, MATCH_END, self.timings.match_end)
        self._broadcast_players(room)

    # ------------------------------------------------------------------
    # Match end
    # ------------------------------------------------------------------

    def award_match_winners(self, room: Room) -> list[Player]:
        """Notify the reward service once per match for every top scorer."""
        with room.lock:
            if room.state.winner_award_sent or not room.players:
                return []
            winners = match_winners(room.players)
            room.state.winner_award_sent = True
            for w in winners:
                name = w.username.strip()
                if name:
                    self._scheduler.spawn(self._rewards.notify_winner, name)
            logger.info("[%s] Match winners: %s", room.code, ", ".join(w.username for w in winners))
            return winners

    def skip_match_end(self, sid: str, code: str) -> None:
        room = self.registry.find(code)
        if room is None:
            return
        with self._guard(room):
            if room.state.phase != MATCH_END:
                return
            player = room.find_player(sid)
            if player is None or player.has_skipped:
                return
            player.has_skipped = True
            self._broadcast_players(room)
            self._check_match_end_quorum(room)

    def _check_match_end_quorum(self, room: Room) -> None:
        active = room.active_players()
        if not active or all(p.has_skipped for p in active):
            self._reset_match(room)

    def _recheck_quorums(self, room: Room) -> None:
        phase = room.state.phase
        if phase == LOBBY:
            self._check_lobby_ready(room)
        elif phase == DISCUSSING:
            self._check_discussion_quorum(room)
        elif phase == VOTING:
            self._check_voting_quorum(room)
        elif phase == MATCH_END:
            self._check_match_end_quorum(room)

    def _reset_match(self, room: Room) -> None:
        room.purge_offline()
        for p in room.players:
            p.clear_round()
            p.is_ready = False
            p.score = 0
            p.has_skipped = False
            p.has_skipped_discussion = False

        state = room.state
        state.turn_order = []
        state.turn_index = 0
        state.current_round = 0
        state.winner_award_sent = False
        state.art_cache = []
        state.art_pair = None
        state.starting = False

        self._set_phase(room, LOBBY, 0)
        self._broadcast_players(room)
        self.broadcast_public_rooms()

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def check_admin_secret(self, secret: str | None) -> None:
        if not self._admin_secret or not hmac.compare_digest(
            (secret or "").encode(), self._admin_secret.encode()
        ):
            raise Unauthorized()

    def admin_skip_phase(self, code: str, secret: str | None) -> None:
        self.check_admin_secret(secret)
        room = self._require_room(code)
        with self._guard(room):
            logger.info("[%s] Admin skip (phase %s)", room.code, room.state.phase)
            self.clock.cancel(room)
            if room.state.phase == LOBBY:
                if not room.state.starting:
                    self._begin_match(room)
            else:
                self._on_timeout(room)
