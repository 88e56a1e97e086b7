"""
Tests for the terminal front end.
"""

import pytest

from numbergame.client import main as cli
from conftest import guess_response
from numbergame.client.game import OnlineGame
from numbergame.client.network import NetworkHealth
from numbergame.client.settings import Settings
from numbergame.shared.protocols import HistoryResponse, Winner


def feed(*lines):
    it = iter(lines)

    def input_fn(prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return input_fn


def test_parser_options():
    args = cli.build_parser().parse_args(["--server", "http://x/api", "--digits", "3", "npc", "--difficulty", "hard"])
    settings = cli.apply_args(Settings(), args)
    assert (settings.server_url, settings.digits, settings.difficulty) == ("http://x/api", 3, "hard")
    assert args.command == "npc"


def test_parser_rejects_bad_digits():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["--digits", "7", "health"])


def test_health_command(monkeypatch):
    class Api:
        def __init__(self, url):
            self.url = url
            self.health = NetworkHealth()

        def check_health(self):
            ok = self.url.startswith("http://up")
            self.health.record(ok, 50.0)
            return ok

        def close(self):
            pass

    monkeypatch.setattr(cli, "GameApiClient", Api)
    out = []
    assert cli.cmd_health(Settings(server_url="http://up/api"), out=out.append) == 0
    assert out[0] == "Server http://up/api is reachable (connection excellent)."
    assert cli.cmd_health(Settings(server_url="http://down/api"), out=out.append) == 1
    assert "not reachable" in out[-1]


def test_npc_quit_reveals_secret():
    out = []
    code = cli.cmd_npc(Settings(digits=3, difficulty="easy"), input_fn=feed("11", "123", "q"), out=out.append, sleep=lambda s: None)
    assert code == 0
    assert "Secret must be exactly 3 digits." in out
    assert "secret was" in out[-1]


def test_npc_plays_turns():
    out = []
    code = cli.cmd_npc(Settings(digits=2, difficulty="expert"), input_fn=feed("12", "34", "56"), out=out.append, sleep=lambda s: None)
    assert code == 0
    assert any("thinking" in line or "You won" in line for line in out)


def test_main_without_command_prints_help(capsys, monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "load_settings", lambda: Settings())
    assert cli.main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_main_saves_settings_for_commands(monkeypatch):
    saved = []
    monkeypatch.setattr(cli, "load_settings", lambda: Settings())
    monkeypatch.setattr(cli, "save_settings", lambda s: saved.append(s))
    monkeypatch.setattr(cli, "cmd_health", lambda s: 0)
    assert cli.main(["--name", "Zed", "--digits", "2", "health"]) == 0
    assert [(s.player_name, s.digits) for s in saved] == [("Zed", 2)]


@pytest.fixture
def online_game(stub_api, scheduler, timers):
    game = OnlineGame(stub_api, scheduler=scheduler, timer_factory=timers)
    game.configure("room-1", "p1", 4, secret="1234")
    game.game_state = "PLAYING"
    game.current_turn = "p1"
    game.is_my_turn = True
    return game


def opponent_wins(game):
    def sleep(seconds):
        game.apply_history(HistoryResponse(history=[], winner=Winner("p2", "Bob")))

    return sleep


def test_keep_guessing_after_loss_reports_practice(online_game, stub_api):
    stub_api.guess_results = [
        guess_response(0, 0, turn="p2"),
        guess_response(4, 0, correct=True, turn="p2", state="WINNER_ANNOUNCED", winner=Winner("p2", "Bob")),
    ]
    out = []
    code = cli.play_online_game(online_game, input_fn=feed("5678", "y", "4321"), out=out.append, sleep=opponent_wins(online_game))
    assert code == 0
    assert "Bob won." in out
    assert ("practice_complete", "room-1", "p1", "4321") in stub_api.calls
    assert out[-1] == "You found the secret 4321."


def test_decline_keep_guessing(online_game, stub_api):
    out = []
    code = cli.play_online_game(online_game, input_fn=feed("5678", "n"), out=out.append, sleep=opponent_wins(online_game))
    assert code == 0
    assert online_game.game_state == "FINISHED"
    assert stub_api.names().count("submit_guess") == 1
