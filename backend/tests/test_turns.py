import random

from artspy.game import turns
from artspy.game.models import Player, Room


def make_room(n):
    room = Room(code="ABCDE", owner_id="p0")
    room.players = [Player(id=f"p{i}", username=f"player{i}") for i in range(n)]
    return room


def test_turn_order_is_a_permutation_of_everyone():
    room = make_room(6)
    order = turns.build_turn_order(room.players, random.Random(7))
    assert sorted(order) == sorted(p.id for p in room.players)


def test_seat_writer_skips_absent_and_offline_players():
    room = make_room(4)
    room.state.turn_order = ["p3", "gone", "p1", "p2"]
    room.find_player("p3").is_offline = True

    writer, skipped = turns.seat_writer(room)

    assert writer.id == "p1"
    assert skipped == ["p3", "gone"]
    assert room.state.turn_index == 2
    assert turns.is_current_writer(room, "p1")


def test_seat_writer_returns_none_when_order_exhausted():
    room = make_room(2)
    room.state.turn_order = ["p0", "p1"]
    room.state.turn_index = 1
    room.find_player("p1").is_offline = True

    writer, skipped = turns.seat_writer(room)

    assert writer is None
    assert skipped == ["p1"]
    assert room.state.turn_index == 2
    assert turns.current_writer_id(room) is None
