"""
等待房间（对局开始前）

流程：加入房间 -> 选择位数 -> 设置谜底 -> 服务器进入 PLAYING 后交给 OnlineGame。
等待期间按阶段调整轮询频率：等待玩家 3 秒一次，设置阶段 2 秒一次，其余阶段不轮询。
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from numbergame.client.errors import GameClientError, InvalidMoveError
from numbergame.client.game import OnlineGame
from numbergame.client.network import GameApiClient
from numbergame.client.poller import RepeatingTimer, Scheduler, call_later
from numbergame.shared.constants import (
    LOBBY_POLL_INTERVALS,
    MAX_DIGITS,
    MIN_DIGITS,
    STATE_PLAYING,
    STATE_WAITING,
)
from numbergame.shared.protocols import JoinResponse, PlayerInfo
from numbergame.shared.scoring import validate_secret

logger = logging.getLogger(__name__)


class WaitingRoom:
    """对局前的房间状态与动作"""

    def __init__(
        self,
        api: GameApiClient,
        scheduler: Scheduler = call_later,
        timer_factory: Callable[..., RepeatingTimer] = RepeatingTimer,
    ) -> None:
        self.api = api
        self.scheduler = scheduler
        self.timer_factory = timer_factory
        self.room_id = ""
        self.player_id = ""
        self.player_name = ""
        self.position = 0
        self.game_state = ""
        self.digits = 0
        self.secret = ""
        self.fallback_mode = False
        self.players: List[PlayerInfo] = []
        self._timer: Optional[RepeatingTimer] = None
        self._lock = threading.RLock()
        self._ui_handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {}

    def on_ui(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        self._ui_handlers[event] = handler

    def _emit_ui(self, event: str, payload: Dict[str, Any]) -> None:
        cb = self._ui_handlers.get(event)
        if cb:
            try:
                cb(payload)
            except Exception:
                logger.exception("UI handler for %s failed", event)

    @property
    def joined(self) -> bool:
        return bool(self.room_id and self.player_id)

    def join(self, player_name: str) -> JoinResponse:
        """以给定名字加入房间（服务器自动匹配）。"""
        name = (player_name or "").strip()
        if not name:
            raise InvalidMoveError("Player name must not be empty.")
        resp = self.api.join_room(name)
        with self._lock:
            self.player_name = name
            self.room_id = resp.room_id
            self.player_id = resp.player_id
            self.position = resp.position
            self.fallback_mode = resp.fallback_mode
        logger.info("Joined room %s as %s (position %d, state %s)", resp.room_id, resp.player_id, resp.position, resp.game_state)
        if resp.fallback_mode:
            logger.warning("Using local development mode: %s", resp.mode)
        self._emit_ui("joined", {"room_id": resp.room_id, "player_id": resp.player_id, "fallback_mode": resp.fallback_mode})
        self._apply_state(resp.game_state)
        return resp

    def check_status(self) -> bool:
        """拉取一次房间状态；失败时发出 connection=False 事件。"""
        if not self.joined:
            logger.warning("check_status: missing roomId or playerId")
            self._emit_ui("connection", {"connected": False})
            return False
        try:
            status = self.api.fetch_status(self.room_id, self.player_id)
        except GameClientError as exc:
            logger.warning("Room status check failed: %s", exc)
            self._emit_ui("connection", {"connected": False, "error": exc})
            return False
        room = status.room
        with self._lock:
            before = [p.player_id for p in self.players]
            self.players = list(room.players)
            me = room.find_player(self.player_id)
            if me is not None and me.selected_digits:
                self.digits = me.selected_digits
        self._emit_ui("connection", {"connected": True})
        if before != [p.player_id for p in room.players]:
            self._emit_ui("players_changed", {"players": list(room.players)})
        if room.game_state:
            self._apply_state(room.game_state)
        return True

    def select_digits(self, digits: int) -> None:
        if not MIN_DIGITS <= digits <= MAX_DIGITS:
            raise InvalidMoveError(f"Digits must be between {MIN_DIGITS} and {MAX_DIGITS}.")
        if not self.joined:
            raise InvalidMoveError("Join a room first.")
        logger.info("Sending digit selection %d for room %s", digits, self.room_id)
        data = self.api.select_digits(self.room_id, self.player_id, digits)
        with self._lock:
            self.digits = digits
        self._apply_state(data.get("gameState") or self.game_state)

    def set_secret(self, secret: str) -> None:
        secret = (secret or "").strip()
        if not self.joined:
            raise InvalidMoveError("Join a room first.")
        ok, message = validate_secret(secret, self.digits)
        if not ok:
            raise InvalidMoveError(message)
        data = self.api.set_secret(self.room_id, self.player_id, secret)
        with self._lock:
            self.secret = secret
        logger.info("Secret set for room %s", self.room_id)
        self._emit_ui("secret_set", {"digits": self.digits})
        self._apply_state(data.get("gameState") or self.game_state)

    def _apply_state(self, new_state: str) -> None:
        with self._lock:
            if not new_state or new_state == self.game_state:
                return
            old = self.game_state
            self.game_state = new_state
        logger.info("Lobby state: %s -> %s", old or "-", new_state)
        self._emit_ui("state_changed", {"old": old, "new": new_state})
        if self._timer is not None:
            self._replan_polling()
        if new_state == STATE_PLAYING:
            self._emit_ui("game_ready", {"room_id": self.room_id, "digits": self.digits})

    # 轮询
    def poll_interval(self) -> Optional[float]:
        return LOBBY_POLL_INTERVALS.get(self.game_state or STATE_WAITING)

    def start_polling(self) -> None:
        if not self.joined:
            logger.warning("Cannot start polling: missing roomId or playerId")
            return
        self._replan_polling()

    def _replan_polling(self) -> None:
        interval = self.poll_interval()
        if interval is None:
            self.stop_polling()
            return
        if self._timer is not None:
            self._timer.set_interval(interval)
            return
        self._timer = self.timer_factory(interval, self.check_status, name="lobby-poller")
        self._timer.start()
        logger.info("Lobby polling every %.1fs for state %s", interval, self.game_state)

    def stop_polling(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()

    def create_game(self) -> OnlineGame:
        """把房间交接给对局对象。"""
        game = OnlineGame(self.api, scheduler=self.scheduler, timer_factory=self.timer_factory)
        game.configure(self.room_id, self.player_id, self.digits, self.secret)
        return game

    def leave(self) -> None:
        self.stop_polling()
        if self.joined:
            self.api.leave(self.room_id, self.player_id)


__all__ = ["WaitingRoom"]
