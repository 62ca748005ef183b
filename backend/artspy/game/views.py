from __future__ import annotations

from .models import WRITING, Player, Room
from .turns import current_writer_id


def player_view(room: Room, p: Player) -> dict:
    # Never expose which role a player holds, only whether they have one.
    return {
        "id": p.id,
        "username": p.username,
        "score": p.score,
        "role": "active" if p.role else None,
        "word": p.word,
        "hasVoted": p.vote is not None,
        "isReady": p.is_ready,
        "hasSkippedDiscussion": p.has_skipped_discussion,
        "hasSkipped": p.has_skipped,
        "isOffline": p.is_offline,
        "isOwner": p.id == room.owner_id,
    }


def player_list(room: Room) -> list[dict]:
    return [player_view(room, p) for p in room.players]


def game_state(room: Room) -> dict:
    state = room.state
    writer_id = current_writer_id(room) if state.phase == WRITING else None
    writer = room.find_player(writer_id)
    return {
        "phase": state.phase,
        "timer": state.timer,
        "currentRound": state.current_round,
        "totalRounds": room.rounds,
        "starting": state.starting,
        "turn": {
            "writerId": writer_id,
            "writerName": writer.username if writer else None,
        },
        "words": [{"username": p.username, "word": p.word} for p in room.players if p.word],
    }


def room_snapshot(room: Room, viewer_id: str | None = None) -> dict:
    viewer = room.find_player(viewer_id)
    return {
        "room": room.code,
        "user": viewer.username if viewer else None,
        "players": player_list(room),
        "isOwner": viewer_id is not None and viewer_id == room.owner_id,
        "isPublic": room.is_public,
        "state": game_state(room),
    }
