"""
客户端游戏逻辑模块

负责对局中的本地状态管理与网络交互封装：
- 维护当前回合、游戏阶段、本方谜底与猜测历史（服务器为准，本地为可能过期的副本）
- 猜测采用乐观更新：先在本地交出回合，请求失败时回滚并安排一次重试
- 定时轮询房间状态并与本地状态对账，连续失败时进入恢复模式

该模块无 UI 依赖，界面层通过 on_ui() 订阅事件。
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from numbergame.client.errors import GameClientError, InvalidMoveError, NetworkError
from numbergame.client.game.optimistic import PendingGuessLedger, PendingUpdates
from numbergame.client.network import GameApiClient
from numbergame.client.poller import ConnectivityMonitor, RepeatingTimer, Scheduler, call_later
from numbergame.shared.constants import (
    GAME_POLL_INTERVAL,
    GUESS_RETRY_DELAY,
    MAX_POLL_FAILURES,
    PENDING_KEY_GUESS,
    RECOVERY_PAUSE,
    STATE_CONTINUE_GUESSING,
    STATE_FINISHED,
    STATE_PLAYING,
    STATE_WINNER_ANNOUNCED,
    TIME_DRIFT_WARNING_MS,
)
from numbergame.shared.protocols import (
    GuessResponse,
    HistoryEntry,
    HistoryResponse,
    StatusResponse,
    Winner,
    history_signature,
)
from numbergame.shared.scoring import validate_guess, validate_secret

logger = logging.getLogger(__name__)

Event = Tuple[str, Dict[str, Any]]


class OnlineGame:
    """在线对局的本地状态与动作封装"""

    def __init__(
        self,
        api: GameApiClient,
        scheduler: Scheduler = call_later,
        timer_factory: Callable[..., RepeatingTimer] = RepeatingTimer,
        poll_interval: float = GAME_POLL_INTERVAL,
    ) -> None:
        self.api = api
        self.scheduler = scheduler
        self.timer_factory = timer_factory
        self.poll_interval = poll_interval

        self.room_id = ""
        self.player_id = ""
        self.digits = 0
        self.current_turn = ""
        self.is_my_turn = False
        self.game_state = ""
        self.my_secret = ""
        self.opponent_secret = ""
        self.history: List[HistoryEntry] = []
        self.last_history_signature = ""
        self.winner: Optional[Winner] = None

        # // 乐观更新记账
        self.pending = PendingUpdates()
        self.ledger = PendingGuessLedger()

        # // 轮询与恢复
        self.retry_count = 0
        self.recovering = False
        self._last_status: Optional[StatusResponse] = None
        self._timer: Optional[RepeatingTimer] = None
        self.connectivity = ConnectivityMonitor(api.check_health, on_restored=self.refresh, scheduler=scheduler)

        self._lock = threading.RLock()
        self._ui_handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {}

    # 事件派发到 UI 层
    def on_ui(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        self._ui_handlers[event] = handler

    def _emit_ui(self, event: str, payload: Dict[str, Any]) -> None:
        cb = self._ui_handlers.get(event)
        if cb:
            try:
                cb(payload)
            except Exception:
                logger.exception("UI handler for %s failed", event)

    def _emit_all(self, events: List[Event]) -> None:
        for event, payload in events:
            self._emit_ui(event, payload)

    # 配置
    def configure(self, room_id: str, player_id: str, digits: int, secret: str = "") -> None:
        with self._lock:
            self.room_id = room_id
            self.player_id = player_id
            self.digits = digits
            if secret:
                self.my_secret = secret
        logger.info("Game configured: room=%s player=%s digits=%d", room_id, player_id, digits)

    @property
    def in_continue_mode(self) -> bool:
        return self.game_state == STATE_CONTINUE_GUESSING

    @property
    def guess_in_flight(self) -> bool:
        return PENDING_KEY_GUESS in self.pending

    @property
    def is_over(self) -> bool:
        return self.winner is not None and not self.in_continue_mode

    def can_guess(self) -> bool:
        with self._lock:
            if self.guess_in_flight or self.is_over:
                return False
            return self.is_my_turn or self.in_continue_mode

    # 猜测：乐观更新 -> 请求 -> 确认或回滚
    def submit_guess(self, guess: str) -> Optional[GuessResponse]:
        """提交一次猜测。

        本地校验不通过时抛出 InvalidMoveError；网络或服务器失败时回滚回合、
        安排一次延迟重试并返回 None。
        """
        guess = (guess or "").strip()
        with self._lock:
            self._check_guess_allowed(guess)
            events = self._apply_optimistic_guess(guess)
        self._emit_all(events)
        return self._send_guess(guess, allow_retry=True)

    def _check_guess_allowed(self, guess: str) -> None:
        if not self.room_id or not self.player_id or not self.digits:
            raise InvalidMoveError("Game is not configured yet.")
        if self.is_over:
            raise InvalidMoveError("Game is already over.")
        if self.guess_in_flight:
            raise InvalidMoveError("A guess is already being processed.")
        if not (self.is_my_turn or self.in_continue_mode):
            raise InvalidMoveError("Not your turn. Please wait for your turn.")
        ok, message = validate_guess(guess, self.digits)
        if not ok:
            raise InvalidMoveError(message)

    def _apply_optimistic_guess(self, guess: str) -> List[Event]:
        self.pending.begin(
            PENDING_KEY_GUESS,
            guess=guess,
            old_turn=self.current_turn,
            old_is_my_turn=self.is_my_turn,
        )
        self.ledger.add(guess)
        # // 继续猜测模式下不受回合限制，不交出回合
        if not self.in_continue_mode:
            self.is_my_turn = False
        logger.info("Optimistic update: guess %s sent, turn released", guess)
        return [("guess_sent", {"guess": guess})]

    def _send_guess(self, guess: str, allow_retry: bool) -> Optional[GuessResponse]:
        try:
            resp = self.api.submit_guess(self.room_id, self.player_id, guess)
        except GameClientError as exc:
            self._handle_guess_failure(guess, exc, allow_retry)
            return None
        self._handle_guess_success(guess, resp)
        return resp

    def _handle_guess_failure(self, guess: str, exc: GameClientError, allow_retry: bool) -> None:
        with self._lock:
            snapshot = self.pending.rollback(PENDING_KEY_GUESS)
            if snapshot is not None:
                self.current_turn = snapshot["old_turn"]
                self.is_my_turn = snapshot["old_is_my_turn"]
            if allow_retry:
                self.ledger.fail(guess)
            else:
                self.ledger.rollback(guess)
        logger.warning("Guess %s failed, rolled back: %s", guess, exc)
        if isinstance(exc, NetworkError) and exc.offline:
            self.connectivity.report_offline()
        self._emit_ui("guess_failed", {"guess": guess, "error": exc, "will_retry": allow_retry})
        if allow_retry:
            self.scheduler(GUESS_RETRY_DELAY, lambda: self._retry_guess(guess))
        else:
            self._emit_ui("error", {"error": exc})

    def _retry_guess(self, guess: str) -> None:
        with self._lock:
            self.ledger.rollback(guess)
            try:
                self._check_guess_allowed(guess)
            except InvalidMoveError as exc:
                logger.info("Retry of guess %s dropped: %s", guess, exc)
                return
            events = self._apply_optimistic_guess(guess)
        logger.info("Retrying guess %s", guess)
        self._emit_all(events)
        self._send_guess(guess, allow_retry=False)

    def _handle_guess_success(self, guess: str, resp: GuessResponse) -> None:
        events: List[Event] = []
        practice = False
        won = False
        with self._lock:
            self.pending.commit(PENDING_KEY_GUESS)
            result = resp.result
            if result is None:
                logger.warning("No result object in guess response")
                self.ledger.confirm(guess, 0, 0)
            else:
                self.ledger.confirm(guess, result.bulls, result.cows)
                events.append(("guess_result", {"guess": guess, "bulls": result.bulls, "cows": result.cows, "is_correct": result.is_correct}))
                if result.is_correct:
                    winner = resp.winner
                    if resp.game_state == STATE_WINNER_ANNOUNCED and winner and winner.player_id != self.player_id:
                        # // 对手已获胜，这次猜中只算练习完成
                        practice = True
                    else:
                        won = True
            if not practice and resp.current_turn and not self.in_continue_mode:
                events.extend(self._set_turn(resp.current_turn))
        self._emit_all(events)
        if practice:
            self._complete_practice(guess)
        elif won:
            self._finish(Winner(self.player_id, ""))
        self.refresh_history()

    def _complete_practice(self, discovered_secret: str) -> None:
        try:
            self.api.practice_complete(self.room_id, self.player_id, discovered_secret)
        except GameClientError as exc:
            logger.warning("Practice completion failed: %s", exc)
            self._emit_ui("error", {"error": exc})
            return
        logger.info("Practice completion confirmed for secret %s", discovered_secret)
        self._emit_ui("practice_complete", {"secret": discovered_secret})

    def _set_turn(self, turn: str) -> List[Event]:
        if turn == self.current_turn and self.is_my_turn == (turn == self.player_id):
            return []
        old = self.current_turn
        self.current_turn = turn
        self.is_my_turn = turn == self.player_id
        logger.info("Turn changed: %r -> %r (mine=%s)", old, turn, self.is_my_turn)
        return [("turn_changed", {"current_turn": turn, "is_my_turn": self.is_my_turn})]

    # 对账
    def reconcile(self, status: StatusResponse) -> None:
        """把服务器下发的房间状态合并进本地副本。"""
        events: List[Event] = []
        assign_turn = False
        with self._lock:
            room = status.room
            if status.validation_error:
                logger.warning("Server validation failed: %s", status.validation_error)
                events.append(("validation_error", {"reason": status.validation_error}))
            if status.suggestion:
                logger.info("Server suggestion: %s", status.suggestion)
            if status.next_action:
                logger.info("Next action: %s", status.next_action)

            if room.game_state and room.game_state != self.game_state and not self.in_continue_mode:
                old = self.game_state
                self.game_state = room.game_state
                logger.info("Game state changed: %s -> %s", old or "-", room.game_state)
                events.append(("state_changed", {"old": old, "new": room.game_state}))

            me = room.find_player(self.player_id)
            if me is not None:
                if me.selected_digits and me.selected_digits != self.digits:
                    self.digits = me.selected_digits
                    logger.info("Updated digits to %d", self.digits)
                if me.secret:
                    events.extend(self._reconcile_secret(me.secret))

            # // 猜测未确认或处于继续猜测模式时，服务器的回合信息可能过期，不覆盖
            if room.current_turn and not self.guess_in_flight and not self.in_continue_mode:
                events.extend(self._set_turn(room.current_turn))

            if status.server_time is not None:
                drift = abs(time.time() * 1000 - status.server_time)
                if drift > TIME_DRIFT_WARNING_MS:
                    logger.warning("Time drift detected: %.0fms", drift)

            if self.game_state == STATE_PLAYING and not self.current_turn and self.player_id:
                assign_turn = True
                events.extend(self._set_turn(self.player_id))
        self._emit_all(events)
        if assign_turn:
            self._assign_first_turn()

    def _reconcile_secret(self, server_secret: str) -> List[Event]:
        if server_secret == self.my_secret:
            return []
        if self.my_secret:
            logger.warning("Ignoring server secret %s, keeping player secret", server_secret)
            return []
        ok, reason = validate_secret(server_secret, self.digits)
        if not ok:
            logger.warning("Rejecting invalid secret from server: %s", reason)
            return []
        self.my_secret = server_secret
        logger.info("Received secret from server")
        return [("secret_changed", {"secret": server_secret})]

    def _assign_first_turn(self) -> None:
        logger.info("Auto-assigning first turn to %s", self.player_id)
        try:
            self.api.assign_turn(self.room_id, self.player_id, self.player_id)
        except GameClientError as exc:
            logger.warning("Error assigning turn: %s", exc)

    def apply_history(self, resp: HistoryResponse) -> bool:
        """更新猜测历史；内容未变化时返回 False。"""
        signature = history_signature(resp.history)
        changed = False
        with self._lock:
            if signature != self.last_history_signature:
                self.last_history_signature = signature
                self.history = list(resp.history)
                changed = True
        if changed:
            self._emit_ui("history_changed", {"history": list(resp.history)})
        if resp.winner is not None:
            self._finish(resp.winner)
        return changed

    def _finish(self, winner: Winner) -> None:
        with self._lock:
            if self.winner is not None:
                return
            self.winner = winner
            if not self.in_continue_mode:
                self.game_state = STATE_FINISHED
        self.stop_polling()
        if winner.player_id == self.player_id:
            logger.info("Game won by this player")
            self._emit_ui("game_won", {"winner": winner})
        else:
            name = winner.player_name or "Opponent"
            logger.info("Game won by %s", name)
            self._emit_ui("game_lost", {"winner": winner, "winner_name": name})

    def enter_continue_guessing(self, opponent_secret: Optional[str] = None) -> None:
        """对局结束后继续猜对手谜底，不受回合限制。"""
        with self._lock:
            if opponent_secret:
                self.opponent_secret = opponent_secret
            old = self.game_state
            self.game_state = STATE_CONTINUE_GUESSING
            self.current_turn = self.player_id
            self.is_my_turn = True
        logger.info("Continue guessing mode enabled")
        self._emit_ui("state_changed", {"old": old, "new": STATE_CONTINUE_GUESSING})

    # 刷新与轮询
    def refresh(self) -> bool:
        """拉取一次房间状态并对账；对局进行中时顺带拉取历史。"""
        try:
            status = self.api.fetch_status(self.room_id, self.player_id)
        except GameClientError as exc:
            logger.warning("Status fetch failed: %s", exc)
            if isinstance(exc, NetworkError) and exc.offline:
                self.connectivity.report_offline()
            return False
        with self._lock:
            self._last_status = status
        self.reconcile(status)
        if self.game_state == STATE_PLAYING:
            self.refresh_history()
        return True

    def refresh_history(self) -> bool:
        if not self.room_id or not self.player_id:
            return False
        try:
            resp = self.api.fetch_history(self.room_id, self.player_id)
        except GameClientError as exc:
            logger.debug("History fetch failed: %s", exc)
            return False
        self.apply_history(resp)
        return True

    def poll_tick(self) -> None:
        """轮询一次；连续失败达到上限后进入恢复模式。"""
        if self.recovering:
            logger.debug("Skipping fetch - recovery in progress")
            return
        if self.refresh():
            self.retry_count = 0
            return
        self.retry_count += 1
        logger.warning("Fetch failed (attempt %d/%d)", self.retry_count, MAX_POLL_FAILURES)
        if self.retry_count < MAX_POLL_FAILURES:
            return
        self.recovering = True
        self.retry_count = 0
        with self._lock:
            cached = self._last_status
        if cached is not None:
            logger.info("Using cached response for recovery")
            self.reconcile(cached)
        self._emit_ui("recovering", {"pause": RECOVERY_PAUSE})
        self.scheduler(RECOVERY_PAUSE, self._end_recovery)

    def _end_recovery(self) -> None:
        self.recovering = False
        logger.info("Recovery mode ended, resuming normal polling")

    def start_polling(self) -> None:
        self.stop_polling()
        self.retry_count = 0
        self.recovering = False
        self._timer = self.timer_factory(self.poll_interval, self.poll_tick, name="game-poller")
        self._timer.start()
        logger.info("Started game polling every %.1fs", self.poll_interval)

    def stop_polling(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.stop()
            logger.info("Stopped game polling")

    def leave(self) -> None:
        self.stop_polling()
        if self.room_id and self.player_id:
            self.api.leave(self.room_id, self.player_id)


__all__ = ["OnlineGame"]
