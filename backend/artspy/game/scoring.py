from __future__ import annotations

import random
from dataclasses import dataclass, field

from .models import IMPOSTOR, INNOCENT, ArtPair, Player, Room


CATCH_REWARD = 20
ESCAPE_BASE_REWARD = 30
ESCAPE_PER_PLAYER_REWARD = 10
TWO_IMPOSTOR_THRESHOLD = 8


def impostor_count(player_count: int) -> int:
    return 2 if player_count >= TWO_IMPOSTOR_THRESHOLD else 1


def assign_roles(players: list[Player], rng: random.Random) -> list[Player]:
    """Mark everyone innocent, then draw the impostor(s) without replacement."""
    for p in players:
        p.role = INNOCENT
    if not players:
        return []

    count = min(impostor_count(len(players)), len(players))
    shuffled = list(players)
    rng.shuffle(shuffled)
    impostors = shuffled[:count]
    for p in impostors:
        p.role = IMPOSTOR
    return impostors


def tally_votes(players: list[Player]) -> tuple[str | None, dict[str, int]]:
    """Count votes in roster order.

    The accused is the first target to reach the running maximum, so a tie
    goes to whichever target got there first while walking the roster.
    """
    counts: dict[str, int] = {}
    accused: str | None = None
    max_votes = 0
    for p in players:
        if not p.vote:
            continue
        counts[p.vote] = counts.get(p.vote, 0) + 1
        if counts[p.vote] > max_votes:
            max_votes = counts[p.vote]
            accused = p.vote
    return accused, counts


@dataclass
class RoundResult:
    winner: str
    message: str
    impostor_names: list[str]
    accused_id: str | None
    images: ArtPair | None
    deltas: dict[str, int] = field(default_factory=dict)

    @property
    def impostor_name(self) -> str:
        return ", ".join(self.impostor_names) if self.impostor_names else "Unknown"

    def to_payload(self) -> dict:
        return {
            "winner": self.winner,
            "message": self.message,
            "impostorName": self.impostor_name,
            "impostorNames": list(self.impostor_names),
            "images": self.images.to_dict() if self.images else None,
        }


def resolve_round(room: Room) -> RoundResult:
    """Tally the votes and apply the score changes for this round."""
    accused_id, _ = tally_votes(room.players)
    accused = room.find_player(accused_id)
    impostors = [p for p in room.players if p.role == IMPOSTOR]
    names = [p.username for p in impostors]
    deltas: dict[str, int] = {}

    if accused is not None and accused.role == IMPOSTOR:
        for p in room.players:
            if p.vote == accused.id:
                p.score += CATCH_REWARD
                deltas[p.id] = deltas.get(p.id, 0) + CATCH_REWARD
        return RoundResult(
            winner="innocents",
            message=f"The impostor ({accused.username}) was caught!",
            impostor_names=names,
            accused_id=accused_id,
            images=room.state.art_pair,
            deltas=deltas,
        )

    reward = ESCAPE_BASE_REWARD + ESCAPE_PER_PLAYER_REWARD * len(room.players)
    for p in impostors:
        p.score += reward
        deltas[p.id] = reward
    label = ", ".join(names) if names else "Unknown"
    return RoundResult(
        winner="impostor",
        message=f"The impostor got away! (Impostor: {label})",
        impostor_names=names,
        accused_id=accused_id,
        images=room.state.art_pair,
        deltas=deltas,
    )


def match_winners(players: list[Player]) -> list[Player]:
    if not players:
        return []
    top = max(p.score for p in players)
    return [p for p in players if p.score == top]
