"""
Tests for the waiting room: join, setup actions and state-driven polling.
"""

import pytest

from conftest import make_status, offline_error
from numbergame.client.errors import InvalidMoveError
from numbergame.client.lobby import WaitingRoom
from numbergame.shared.protocols import JoinResponse, PlayerInfo


@pytest.fixture
def room(stub_api, scheduler, timers):
    return WaitingRoom(stub_api, scheduler=scheduler, timer_factory=timers)


def test_join(room, stub_api, events):
    collected = events(room, "joined", "state_changed")
    room.join("  Alice ")
    assert stub_api.calls[0] == ("join_room", "Alice")
    assert room.joined
    assert (room.room_id, room.player_id, room.game_state) == ("room-1", "p1", "WAITING")
    assert collected == [
        ("joined", {"room_id": "room-1", "player_id": "p1", "fallback_mode": False}),
        ("state_changed", {"old": "", "new": "WAITING"}),
    ]


def test_join_requires_name(room, stub_api):
    with pytest.raises(InvalidMoveError):
        room.join("   ")
    assert stub_api.calls == []


def test_join_fallback_mode(room, stub_api, events):
    stub_api.join_response = JoinResponse("room-2", "p7", fallback_mode=True, mode="local")
    collected = events(room, "joined")
    room.join("Alice")
    assert room.fallback_mode
    assert collected[0][1]["fallback_mode"] is True


def test_check_status_before_join(room, stub_api, events):
    collected = events(room, "connection")
    assert room.check_status() is False
    assert collected == [("connection", {"connected": False})]
    assert stub_api.calls == []


def test_check_status_updates_players(room, stub_api, events):
    room.join("Alice")
    collected = events(room, "connection", "players_changed", "state_changed")
    stub_api.statuses = [make_status(state="DIGIT_SELECTION", players=[PlayerInfo("p1", "Alice", 3), PlayerInfo("p2", "Bob")])]
    assert room.check_status() is True
    assert room.digits == 3
    names = [name for name, _ in collected]
    assert names == ["connection", "players_changed", "state_changed"]
    assert [p.name for p in collected[1][1]["players"]] == ["Alice", "Bob"]

    room.check_status()
    assert [name for name, _ in collected].count("players_changed") == 1


def test_check_status_failure(room, stub_api, events):
    room.join("Alice")
    collected = events(room, "connection")
    stub_api.fail_with["fetch_status"] = offline_error()
    assert room.check_status() is False
    assert collected[0][1]["connected"] is False
    assert "error" in collected[0][1]


def test_select_digits(room, stub_api):
    room.join("Alice")
    room.select_digits(3)
    assert ("select_digits", "room-1", "p1", 3) in stub_api.calls
    assert room.digits == 3
    assert room.game_state == "SECRET_SETTING"


@pytest.mark.parametrize("digits", [0, 5])
def test_select_digits_range(room, digits):
    room.join("Alice")
    with pytest.raises(InvalidMoveError, match="between 1 and 4"):
        room.select_digits(digits)


def test_select_digits_requires_join(room):
    with pytest.raises(InvalidMoveError, match="Join a room first"):
        room.select_digits(4)


def test_set_secret(room, stub_api, events):
    room.join("Alice")
    room.select_digits(4)
    collected = events(room, "secret_set")
    room.set_secret("1234")
    assert room.secret == "1234"
    assert ("set_secret", "room-1", "p1", "1234") in stub_api.calls
    assert collected == [("secret_set", {"digits": 4})]


def test_set_secret_validates(room, stub_api):
    room.join("Alice")
    room.select_digits(4)
    with pytest.raises(InvalidMoveError, match="unique"):
        room.set_secret("1123")
    assert room.secret == ""
    assert not any(c[0] == "set_secret" for c in stub_api.calls)


def test_polling_follows_state(room, stub_api, timers, events):
    collected = events(room, "game_ready")
    room.join("Alice")
    room.start_polling()
    timer = timers.created[0]
    assert timer.interval == 3.0 and timer.started

    room.select_digits(4)
    assert timer.interval == 2.0
    assert len(timers.created) == 1

    stub_api.statuses = [make_status(state="PLAYING")]
    timer.tick()
    assert timer.stopped
    assert collected == [("game_ready", {"room_id": "room-1", "digits": 4})]


def test_start_polling_requires_join(room, timers):
    room.start_polling()
    assert timers.created == []


def test_create_game_hands_over_state(room, scheduler, timers):
    room.join("Alice")
    room.select_digits(4)
    room.set_secret("4567")
    game = room.create_game()
    assert (game.room_id, game.player_id, game.digits, game.my_secret) == ("room-1", "p1", 4, "4567")
    assert game.scheduler is scheduler
    assert game.timer_factory is timers


def test_leave(room, stub_api, timers):
    room.join("Alice")
    room.start_polling()
    room.leave()
    assert timers.created[0].stopped
    assert stub_api.calls[-1] == ("leave", "room-1", "p1")
