"""
协议层：把服务器返回的 JSON 对象解析为带类型的记录

服务器统一返回 ``{"success": ..., "error": ...}`` 外层结构，各接口在此基础上附加字段。
解析尽量宽容（可选字段缺失时给默认值），但缺少必需结构时抛出 ValueError，
由网络层转换为 MalformedResponseError。
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from numbergame.shared.constants import STATE_WAITING


def _require_dict(data: Any, name: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be an object, got {type(data).__name__}")
    return data


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class GuessResult:
    bulls: int
    cows: int
    is_correct: bool

    @classmethod
    def from_dict(cls, data: Any) -> "GuessResult":
        data = _require_dict(data, "result")
        # isCorrect 可能是 0/1 也可能是布尔值
        return cls(
            bulls=_as_int(data.get("bulls")),
            cows=_as_int(data.get("cows")),
            is_correct=bool(_as_int(data.get("isCorrect"))),
        )


@dataclass
class Winner:
    player_id: str
    player_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Winner"]:
        if not isinstance(data, dict) or not data.get("playerId"):
            return None
        return cls(player_id=str(data["playerId"]), player_name=str(data.get("playerName") or ""))


@dataclass
class GuessResponse:
    """猜测接口的回包"""

    result: Optional[GuessResult]
    current_turn: Optional[str] = None
    game_state: Optional[str] = None
    winner: Optional[Winner] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuessResponse":
        raw_result = data.get("result")
        return cls(
            result=GuessResult.from_dict(raw_result) if raw_result is not None else None,
            current_turn=data.get("currentTurn") or None,
            game_state=data.get("gameState") or None,
            winner=Winner.from_dict(data.get("winner")),
        )


@dataclass
class JoinResponse:
    room_id: str
    player_id: str
    position: int = 1
    game_state: str = STATE_WAITING
    fallback_mode: bool = False
    mode: str = "unknown"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JoinResponse":
        room_id = data.get("roomId")
        player_id = data.get("playerId")
        if not room_id or not player_id:
            raise ValueError("join response is missing roomId or playerId")
        return cls(
            room_id=str(room_id),
            player_id=str(player_id),
            position=_as_int(data.get("position"), 1),
            game_state=data.get("gameState") or STATE_WAITING,
            fallback_mode=bool(data.get("fallbackMode", False)),
            mode=data.get("mode") or "unknown",
        )


@dataclass
class PlayerInfo:
    player_id: str
    name: str = ""
    selected_digits: Optional[int] = None
    secret: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "PlayerInfo":
        data = _require_dict(data, "player")
        digits = data.get("selectedDigits")
        return cls(
            player_id=str(data.get("id") or ""),
            name=str(data.get("name") or data.get("playerName") or ""),
            selected_digits=_as_int(digits) if digits is not None else None,
            secret=data.get("secret") or None,
        )


@dataclass
class RoomSnapshot:
    """房间状态快照，字段缺失时沿用服务器的默认语义"""

    room_id: str
    game_state: Optional[str] = None
    current_turn: Optional[str] = None
    players: List[PlayerInfo] = field(default_factory=list)
    current_player_count: int = 0

    @classmethod
    def from_dict(cls, data: Any, fallback_room_id: str = "") -> "RoomSnapshot":
        data = _require_dict(data, "room")
        players = [PlayerInfo.from_dict(p) for p in data.get("players") or []]
        return cls(
            room_id=str(data.get("id") or fallback_room_id),
            game_state=data.get("gameState") or None,
            current_turn=data.get("currentTurn") or None,
            players=players,
            current_player_count=_as_int(data.get("currentPlayerCount"), len(players)),
        )

    def find_player(self, player_id: str) -> Optional[PlayerInfo]:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None


@dataclass
class StatusResponse:
    room: RoomSnapshot
    validation_error: Optional[str] = None
    suggestion: Optional[str] = None
    next_action: Optional[str] = None
    server_time: Optional[float] = None
    recovery: bool = False
    mode: str = "unknown"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback_room_id: str = "") -> "StatusResponse":
        if "room" not in data:
            raise ValueError("status response has no room data")
        validation_error = None
        validation = data.get("validation")
        if isinstance(validation, dict) and validation.get("valid") is False:
            validation_error = validation.get("reason") or "Unknown validation error"
        server_time = data.get("serverTime")
        return cls(
            room=RoomSnapshot.from_dict(data["room"], fallback_room_id),
            validation_error=validation_error,
            suggestion=data.get("suggestion"),
            next_action=data.get("nextAction"),
            server_time=float(server_time) if isinstance(server_time, (int, float)) else None,
            recovery=bool(data.get("recovery", False)),
            mode=data.get("mode") or "unknown",
        )


@dataclass
class HistoryEntry:
    player_id: str
    player_name: str
    guess: str
    bulls: int
    cows: int
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "HistoryEntry":
        data = _require_dict(data, "history entry")
        return cls(
            player_id=str(data.get("playerId") or ""),
            player_name=str(data.get("playerName") or ""),
            guess=str(data.get("guess") or ""),
            bulls=_as_int(data.get("bulls")),
            cows=_as_int(data.get("cows")),
            timestamp=str(data.get("timestamp") or ""),
        )


@dataclass
class HistoryResponse:
    history: List[HistoryEntry]
    winner: Optional[Winner] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryResponse":
        raw = data.get("history")
        if not isinstance(raw, list):
            raise ValueError("history response has no history list")
        return cls(
            history=[HistoryEntry.from_dict(e) for e in raw],
            winner=Winner.from_dict(data.get("winner")),
        )


def history_signature(entries: List[HistoryEntry]) -> str:
    """按内容与顺序计算历史记录签名，用于跳过未变化的更新。"""
    digest = hashlib.sha1()
    for index, e in enumerate(entries):
        digest.update(f"{index}:{e.player_name}|{e.guess}|{e.bulls}|{e.cows}|{e.timestamp};".encode("utf-8"))
    return digest.hexdigest()


__all__ = [
    "GuessResult",
    "Winner",
    "GuessResponse",
    "JoinResponse",
    "PlayerInfo",
    "RoomSnapshot",
    "StatusResponse",
    "HistoryEntry",
    "HistoryResponse",
    "history_signature",
]
