"""
客户端主程序入口

终端版客户端：在线对战（加入房间 -> 选位数 -> 设谜底 -> 轮流猜测）、
人机对战，以及服务器健康检查。
"""

import argparse
import logging
import sys
import threading
import time
from typing import Callable, List, Optional

from numbergame.client.errors import GameClientError, InvalidMoveError, describe_error
from numbergame.client.game import OnlineGame
from numbergame.client.lobby import WaitingRoom
from numbergame.client.network import GameApiClient
from numbergame.client.npc import Difficulty, NpcMatch, character_for
from numbergame.client.settings import DIFFICULTIES, Settings, load_settings, save_settings
from numbergame.shared.constants import MAX_DIGITS, MIN_DIGITS, STATE_PLAYING, STATE_SECRET_SETTING

logger = logging.getLogger(__name__)

SETUP_TIMEOUT = 300.0
QUIT_WORDS = ("q", "quit", "exit")
YES_WORDS = ("y", "yes")

Output = Callable[[str], None]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="numbergame", description="Bulls and cows number guessing game client")
    parser.add_argument("--server", help="game server base URL")
    parser.add_argument("--name", help="player name")
    parser.add_argument("--digits", type=int, choices=range(MIN_DIGITS, MAX_DIGITS + 1), help="secret length")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("online", help="play against another player")
    npc = sub.add_parser("npc", help="play against the computer")
    npc.add_argument("--difficulty", choices=DIFFICULTIES, help="computer difficulty")
    sub.add_parser("health", help="check the game server")
    return parser


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    if args.server:
        settings.server_url = args.server
    if args.name:
        settings.player_name = args.name
    if args.digits:
        settings.digits = args.digits
    if getattr(args, "difficulty", None):
        settings.difficulty = args.difficulty
    return settings


def _wait_until(predicate: Callable[[], bool], timeout: float, interval: float = 0.2, sleep=time.sleep) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= deadline:
            return False
        sleep(interval)
    return True


def _ask(prompt: str, input_fn: Callable[[str], str]) -> Optional[str]:
    """读取一行输入；EOF 或退出词返回 None。"""
    try:
        line = input_fn(prompt)
    except EOFError:
        return None
    line = line.strip()
    if line.lower() in QUIT_WORDS:
        return None
    return line


# 子命令
def cmd_health(settings: Settings, out: Output = print) -> int:
    api = GameApiClient(settings.server_url)
    try:
        ok = api.check_health()
        quality = api.health.quality()
    finally:
        api.close()
    if ok:
        out(f"Server {settings.server_url} is reachable (connection {quality}).")
        return 0
    out(f"Server {settings.server_url} is not reachable.")
    return 1


def cmd_npc(
    settings: Settings,
    input_fn: Callable[[str], str] = input,
    out: Output = print,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    character = character_for(Difficulty(settings.difficulty))
    out(f"{character.avatar} {character.name} ({character.personality}) accepts your challenge!")
    while True:
        secret = _ask(f"Choose your {settings.digits}-digit secret: ", input_fn)
        if secret is None:
            return 0
        match = NpcMatch(character, settings.digits, secret, sleep=sleep)
        try:
            match.start()
            break
        except InvalidMoveError as exc:
            out(str(exc))

    while match.winner is None:
        guess = _ask("Your guess: ", input_fn)
        if guess is None:
            out(f"{character.name}'s secret was {match.npc_secret}.")
            return 0
        try:
            move = match.play_player_move(guess)
        except InvalidMoveError as exc:
            out(str(exc))
            continue
        out(f"  {move.guess}: {move.bulls} bulls, {move.cows} cows")
        if match.winner:
            break
        out(f"{character.name} is thinking...")
        move = match.play_npc_move()
        out(f"  {character.name} guessed {move.guess}: {move.bulls} bulls, {move.cows} cows")

    if match.winner == "player":
        out("You won!")
    else:
        out(f"{character.name} won! The secret was {match.npc_secret}.")
    return 0


def _print_game_events(game: OnlineGame, out: Output) -> None:
    game.on_ui("turn_changed", lambda p: out("Your turn." if p["is_my_turn"] else "Waiting for opponent..."))
    game.on_ui("guess_failed", lambda p: out(f"Guess failed: {describe_error(p['error'])}" + (" (retrying)" if p["will_retry"] else "")))
    game.on_ui("error", lambda p: out(describe_error(p["error"])))
    game.on_ui("validation_error", lambda p: out(f"Server validation failed: {p['reason']}"))
    game.on_ui("recovering", lambda p: out(f"Connection problems, pausing for {p['pause']:.0f}s..."))
    game.on_ui("game_won", lambda p: out("You won!"))
    game.on_ui("game_lost", lambda p: out(f"{p['winner_name']} won."))


def _guess_loop(
    game: OnlineGame,
    keep_going: Callable[[], bool],
    input_fn: Callable[[str], str],
    out: Output,
    sleep: Callable[[float], None],
) -> bool:
    """轮到自己时读取猜测并提交；玩家退出时返回 False。"""
    while keep_going():
        if not game.can_guess():
            sleep(0.2)
            continue
        guess = _ask("Your guess: ", input_fn)
        if guess is None:
            return False
        try:
            game.submit_guess(guess)
        except InvalidMoveError as exc:
            out(str(exc))
    return True


def play_online_game(
    game: OnlineGame,
    input_fn: Callable[[str], str] = input,
    out: Output = print,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """对局循环。输给对手后可以选择继续猜对方的谜底（练习）。"""
    found = threading.Event()

    def on_result(p):
        out(f"  {p['guess']}: {p['bulls']} bulls, {p['cows']} cows")
        if p["is_correct"]:
            found.set()

    def on_practice(p):
        found.set()
        out(f"You found the secret {p['secret']}.")

    _print_game_events(game, out)
    game.on_ui("guess_result", on_result)
    game.on_ui("practice_complete", on_practice)

    if not _guess_loop(game, lambda: not game.is_over, input_fn, out, sleep):
        return 0
    if game.winner is None or game.winner.player_id == game.player_id:
        return 0
    answer = _ask("Keep guessing your opponent's secret? [y/N] ", input_fn)
    if answer is None or answer.lower() not in YES_WORDS:
        return 0
    game.enter_continue_guessing()
    _guess_loop(game, lambda: not found.is_set(), input_fn, out, sleep)
    return 0


def cmd_online(settings: Settings, input_fn: Callable[[str], str] = input, out: Output = print) -> int:
    api = GameApiClient(settings.server_url)
    room = WaitingRoom(api)
    room.on_ui("joined", lambda p: out(f"Joined room {p['room_id']}" + (" (local mode)" if p["fallback_mode"] else "")))
    room.on_ui("players_changed", lambda p: out("Players: " + ", ".join(pl.name or pl.player_id for pl in p["players"])))
    room.on_ui("state_changed", lambda p: logger.info("Room state %s", p["new"]))
    game: Optional[OnlineGame] = None
    try:
        room.join(settings.player_name)
        room.start_polling()
        room.select_digits(settings.digits)

        out("Waiting for the secret-setting phase...")
        if not _wait_until(lambda: room.game_state in (STATE_SECRET_SETTING, STATE_PLAYING), SETUP_TIMEOUT):
            out("Timed out waiting for the other player.")
            return 1
        while not room.secret:
            secret = _ask(f"Choose your {room.digits}-digit secret: ", input_fn)
            if secret is None:
                return 0
            try:
                room.set_secret(secret)
            except InvalidMoveError as exc:
                out(str(exc))

        out("Waiting for the game to start...")
        room.start_polling()
        if not _wait_until(lambda: room.game_state == STATE_PLAYING, SETUP_TIMEOUT):
            out("Timed out waiting for the game to start.")
            return 1
        room.stop_polling()

        game = room.create_game()
        game.refresh()
        game.start_polling()
        return play_online_game(game, input_fn, out)
    except GameClientError as exc:
        logger.warning("Online game aborted: %s", exc)
        out(describe_error(exc))
        return 1
    finally:
        if game is not None:
            game.leave()
        else:
            room.leave()
        api.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    settings = apply_args(load_settings(), args)
    if args.command:
        save_settings(settings)
    try:
        if args.command == "health":
            return cmd_health(settings)
        if args.command == "npc":
            return cmd_npc(settings)
        if args.command == "online":
            return cmd_online(settings)
    except KeyboardInterrupt:
        print()
        return 0
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
