import random

import pytest

from artspy.game import scoring
from artspy.game.models import ArtPair, Player, Room


def make_room(n):
    room = Room(code="ABCDE", owner_id="p0")
    room.players = [Player(id=f"p{i}", username=f"player{i}") for i in range(n)]
    room.state.art_pair = ArtPair(innocent="https://a", impostor="https://b", theme="Portrait")
    return room


@pytest.mark.parametrize("count,expected", [(2, 1), (7, 1), (8, 2), (12, 2)])
def test_impostor_count(count, expected):
    assert scoring.impostor_count(count) == expected


@pytest.mark.parametrize("n", [2, 5, 7, 8, 9, 12])
def test_assign_roles_draws_without_replacement(n):
    room = make_room(n)
    impostors = scoring.assign_roles(room.players, random.Random(n))

    assert len({p.id for p in impostors}) == scoring.impostor_count(n)
    assert sum(p.role == "impostor" for p in room.players) == scoring.impostor_count(n)
    assert all(p.role in ("innocent", "impostor") for p in room.players)


def test_tally_tie_goes_to_first_target_reaching_the_max():
    room = make_room(4)
    for voter, target in zip(room.players, ["p1", "p2", "p2", "p1"]):
        voter.vote = target

    accused, counts = scoring.tally_votes(room.players)

    assert counts == {"p1": 2, "p2": 2}
    assert accused == "p2"


def test_tally_with_no_votes_accuses_nobody():
    room = make_room(3)
    assert scoring.tally_votes(room.players) == (None, {})


def test_caught_impostor_rewards_correct_voters():
    room = make_room(5)
    impostor = room.players[4]
    for p in room.players:
        p.role = "innocent"
    impostor.role = "impostor"
    for p in room.players[:3]:
        p.vote = impostor.id
    room.players[3].vote = "p0"

    result = scoring.resolve_round(room)

    assert result.winner == "innocents"
    assert [p.score for p in room.players] == [20, 20, 20, 0, 0]
    payload = result.to_payload()
    assert payload["impostorName"] == "player4"
    assert payload["images"] == {"innocent": "https://a", "impostor": "https://b", "theme": "Portrait"}


def test_escaped_impostors_each_get_the_bonus():
    room = make_room(9)
    for p in room.players:
        p.role = "innocent"
    room.players[2].role = "impostor"
    room.players[6].role = "impostor"
    for p in room.players:
        p.vote = "p0"

    result = scoring.resolve_round(room)

    assert result.winner == "impostor"
    assert room.players[2].score == 120
    assert room.players[6].score == 120
    assert sum(p.score for p in room.players) == 240
    assert result.impostor_names == ["player2", "player6"]


def test_nobody_voting_lets_the_impostor_win():
    room = make_room(3)
    for p in room.players:
        p.role = "innocent"
    room.players[0].role = "impostor"

    result = scoring.resolve_round(room)

    assert result.winner == "impostor"
    assert room.players[0].score == 30 + 10 * 3


def test_match_winners_include_ties():
    room = make_room(3)
    room.players[0].score = 40
    room.players[1].score = 40
    room.players[2].score = 10

    assert [p.id for p in scoring.match_winners(room.players)] == ["p0", "p1"]
    assert scoring.match_winners([]) == []
