from __future__ import annotations

import random

from .models import Player, Room


def build_turn_order(players: list[Player], rng: random.Random) -> list[str]:
    order = [p.id for p in players]
    rng.shuffle(order)
    return order


def current_writer_id(room: Room) -> str | None:
    order = room.state.turn_order
    idx = room.state.turn_index
    if 0 <= idx < len(order):
        return order[idx]
    return None


def is_current_writer(room: Room, player_id: str) -> bool:
    return current_writer_id(room) == player_id


def seat_writer(room: Room) -> tuple[Player | None, list[str]]:
    """Move the turn index onto the next present, online writer.

    Returns the seated player (``None`` once the order is exhausted) and the
    ids that were skipped on the way.
    """
    skipped: list[str] = []
    state = room.state
    while state.turn_index < len(state.turn_order):
        writer_id = state.turn_order[state.turn_index]
        writer = room.find_player(writer_id)
        if writer is not None and not writer.is_offline:
            return writer, skipped
        skipped.append(writer_id)
        state.turn_index += 1
    return None, skipped


def advance(room: Room) -> None:
    room.state.turn_index += 1
