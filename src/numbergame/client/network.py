"""
客户端网络封装：通过 HTTP/JSON 与游戏服务器通信，并统计连接质量。
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from numbergame.client.errors import MalformedResponseError, NetworkError, ServerError
from numbergame.shared.constants import (
    DEFAULT_SERVER_URL,
    ENDPOINT_ASSIGN_TURN,
    ENDPOINT_GUESS,
    ENDPOINT_HEALTH,
    ENDPOINT_HISTORY,
    ENDPOINT_JOIN,
    ENDPOINT_LEAVE,
    ENDPOINT_PRACTICE_COMPLETE,
    ENDPOINT_SELECT_DIGITS,
    ENDPOINT_SET_SECRET,
    ENDPOINT_STATUS,
    GUESS_TIMEOUT,
    REQUEST_TIMEOUT,
)
from numbergame.shared.protocols import GuessResponse, HistoryResponse, JoinResponse, StatusResponse

logger = logging.getLogger(__name__)


class NetworkHealth:
    """请求成功率、平均耗时与连续错误计数。"""

    def __init__(self) -> None:
        self.total_requests = 0
        self.successful_requests = 0
        self.consecutive_errors = 0
        self._total_ms = 0.0

    @property
    def success_rate(self) -> float:
        if not self.total_requests:
            return 1.0
        return self.successful_requests / self.total_requests

    @property
    def avg_response_ms(self) -> float:
        if not self.total_requests:
            return 0.0
        return self._total_ms / self.total_requests

    def record(self, success: bool, elapsed_ms: float) -> None:
        self.total_requests += 1
        self._total_ms += elapsed_ms
        if success:
            self.successful_requests += 1
            self.consecutive_errors = 0
        else:
            self.consecutive_errors += 1

    def quality(self) -> str:
        if self.consecutive_errors >= 5:
            return "poor"
        if self.success_rate < 0.7 or self.avg_response_ms > 3000:
            return "fair"
        if self.success_rate < 0.9 or self.avg_response_ms > 1000:
            return "good"
        return "excellent"


class GameApiClient:
    """游戏服务器的 HTTP 客户端，每个接口对应一个方法。"""

    def __init__(
        self,
        base_url: str = DEFAULT_SERVER_URL,
        session: Optional[requests.Session] = None,
        health: Optional[NetworkHealth] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json", "Cache-Control": "no-cache"})
        self.health = health or NetworkHealth()
        self.timeout = timeout

    # 服务器接口
    def check_health(self) -> bool:
        """探测服务器是否可达。"""
        try:
            self._request("GET", ENDPOINT_HEALTH, require_success=False)
        except (NetworkError, ServerError, MalformedResponseError) as exc:
            logger.warning("Health check failed: %s", exc)
            return False
        return True

    def join_room(self, player_name: str) -> JoinResponse:
        data = self._request("POST", ENDPOINT_JOIN, json={"playerName": player_name})
        return self._parse(JoinResponse.from_dict, data)

    def fetch_status(self, room_id: str, player_id: str) -> StatusResponse:
        data = self._request(
            "GET",
            ENDPOINT_STATUS,
            params={"roomId": room_id, "playerId": player_id},
            require_success=False,
        )
        # 服务器在恢复模式下会带 recovery=true，此时即便 success=false 也要处理房间数据
        if data.get("success") is not True and not data.get("recovery"):
            raise ServerError(data.get("error") or "Unknown error")
        return self._parse(lambda d: StatusResponse.from_dict(d, room_id), data)

    def select_digits(self, room_id: str, player_id: str, digits: int) -> Dict[str, Any]:
        return self._request(
            "POST",
            ENDPOINT_SELECT_DIGITS,
            json={"roomId": room_id, "playerId": player_id, "digit": digits},
        )

    def set_secret(self, room_id: str, player_id: str, secret: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            ENDPOINT_SET_SECRET,
            json={"roomId": room_id, "playerId": player_id, "secret": secret},
        )

    def submit_guess(self, room_id: str, player_id: str, guess: str) -> GuessResponse:
        data = self._request(
            "POST",
            ENDPOINT_GUESS,
            json={"roomId": room_id, "playerId": player_id, "guess": guess},
            timeout=GUESS_TIMEOUT,
        )
        return self._parse(GuessResponse.from_dict, data)

    def fetch_history(self, room_id: str, player_id: str) -> HistoryResponse:
        data = self._request("GET", ENDPOINT_HISTORY, params={"roomId": room_id, "playerId": player_id})
        return self._parse(HistoryResponse.from_dict, data)

    def assign_turn(self, room_id: str, player_id: str, turn_player: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            ENDPOINT_ASSIGN_TURN,
            json={"roomId": room_id, "playerId": player_id, "turnPlayer": turn_player},
        )

    def practice_complete(self, room_id: str, player_id: str, discovered_secret: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            ENDPOINT_PRACTICE_COMPLETE,
            json={"roomId": room_id, "playerId": player_id, "discoveredSecret": discovered_secret},
        )

    def leave(self, room_id: str, player_id: str) -> None:
        """离开游戏，发出即忘，不抛出异常。"""
        try:
            self._request(
                "POST",
                ENDPOINT_LEAVE,
                json={"roomId": room_id, "playerId": player_id},
                require_success=False,
            )
        except (NetworkError, ServerError, MalformedResponseError) as exc:
            logger.info("Leave request ignored error: %s", exc)

    def close(self) -> None:
        self.session.close()

    # 内部方法
    def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        require_success: bool = True,
    ) -> Dict[str, Any]:
        url = self.base_url + endpoint
        started = time.monotonic()
        try:
            resp = self.session.request(
                method,
                url,
                json=json,
                params=params,
                timeout=timeout or self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            self._record(False, started)
            raise NetworkError(str(exc), offline=True) from exc
        except requests.RequestException as exc:
            self._record(False, started)
            raise NetworkError(str(exc)) from exc

        try:
            data = self._decode(resp)
        except (ServerError, MalformedResponseError):
            self._record(False, started)
            raise
        if require_success and data.get("success") is not True:
            self._record(False, started)
            raise ServerError(data.get("error") or "Unknown error", resp.status_code)
        self._record(True, started)
        return data

    def _decode(self, resp: requests.Response) -> Dict[str, Any]:
        text = resp.text or ""
        logger.debug("%s %s -> %s", resp.request.method if resp.request else "?", resp.url, resp.status_code)
        if text.lstrip().lower().startswith(("<!doctype", "<html")):
            raise MalformedResponseError("server returned HTML instead of JSON", body=text)
        if resp.status_code >= 400:
            message = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("error") or body.get("message") or ""
            except ValueError:
                pass
            raise ServerError(message, resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Response that failed to decode: %s", text[:200])
            raise MalformedResponseError(f"invalid JSON: {exc}", body=text) from exc
        if not isinstance(data, dict):
            raise MalformedResponseError("response is not a JSON object", body=text)
        return data

    @staticmethod
    def _parse(parser, data: Dict[str, Any]):
        try:
            return parser(data)
        except ValueError as exc:
            raise MalformedResponseError(str(exc)) from exc

    def _record(self, success: bool, started: float) -> None:
        self.health.record(success, (time.monotonic() - started) * 1000.0)


__all__ = ["GameApiClient", "NetworkHealth"]
