"""
客户端错误类型

三类远端错误：网络错误、服务器报告的失败、格式错误的回包；
另有 InvalidMoveError 表示本地校验拒绝的操作（不是你的回合、长度不对等）。
"""

from __future__ import annotations

from typing import Optional


class GameClientError(Exception):
    """所有客户端错误的基类"""


class NetworkError(GameClientError):
    """传输层失败（连接失败、超时等）。offline 表示看起来是断网。"""

    def __init__(self, message: str, offline: bool = False) -> None:
        super().__init__(message)
        self.offline = offline


class ServerError(GameClientError):
    """服务器明确返回失败（HTTP >= 400 或 success=false）"""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class MalformedResponseError(GameClientError):
    """回包无法解析：HTML 页面、非 JSON、结构不符"""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body

    @property
    def is_html(self) -> bool:
        head = self.body.lstrip()[:20].lower()
        return head.startswith("<!doctype") or head.startswith("<html")


class InvalidMoveError(GameClientError):
    """本地拒绝的操作，不会发往服务器"""


def describe_error(exc: BaseException) -> str:
    """把异常转换为给用户看的提示语。"""
    if isinstance(exc, MalformedResponseError):
        if exc.is_html:
            if "This page does not exist" in exc.body or "404" in exc.body:
                return "API endpoint not found. Please check server deployment."
            if "500" in exc.body or "Internal Server Error" in exc.body:
                return "Server error. Please try again later."
            return "Server returned HTML instead of JSON. Check server configuration."
        return "Invalid response format from server."
    if isinstance(exc, ServerError):
        if exc.status_code == 503:
            return "Database not configured. Please contact app developer."
        if exc.message:
            return exc.message
        if exc.status_code is not None:
            return f"HTTP Error {exc.status_code}. Server may be down."
        return "Server reported an unknown error."
    if isinstance(exc, NetworkError):
        return f"Connection failed: {exc}"
    return str(exc) or exc.__class__.__name__


__all__ = [
    "GameClientError",
    "NetworkError",
    "ServerError",
    "MalformedResponseError",
    "InvalidMoveError",
    "describe_error",
]
