"""
乐观更新的记账工具

- PendingUpdates: 扁平的 key -> 快照 映射，提交前保存旧状态，失败时取回用于回滚
- PendingGuessLedger: 记录已发出的猜测及其状态（pending / confirmed / failed）
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from numbergame.shared.constants import PENDING_GUESS_TTL

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_FAILED = "failed"


class PendingUpdates:
    """尚未被服务器确认的本地修改"""

    def __init__(self) -> None:
        self._items: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()

    def begin(self, key: str, **snapshot: Any) -> None:
        with self._lock:
            snapshot.setdefault("timestamp", time.time())
            self._items[key] = snapshot

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(key)
            return dict(item) if item is not None else None

    def commit(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def rollback(self, key: str) -> Optional[Dict[str, Any]]:
        """取出并删除快照，调用方据此恢复旧状态。"""
        with self._lock:
            return self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


@dataclass
class PendingGuess:
    guess: str
    target: str
    timestamp: float
    status: str = STATUS_PENDING
    bulls: Optional[int] = None
    cows: Optional[int] = None


class PendingGuessLedger:
    """已发出猜测的台账，按发出顺序保存。"""

    def __init__(self, ttl: float = PENDING_GUESS_TTL) -> None:
        self.ttl = ttl
        self.entries: List[PendingGuess] = []

    def add(self, guess: str, target: str = "opponent", now: Optional[float] = None) -> PendingGuess:
        entry = PendingGuess(guess=guess, target=target, timestamp=now if now is not None else time.time())
        self.entries.append(entry)
        return entry

    def _find_pending(self, guess: str) -> Optional[PendingGuess]:
        for entry in self.entries:
            if entry.guess == guess and entry.status == STATUS_PENDING:
                return entry
        return None

    def confirm(self, guess: str, bulls: int, cows: int, now: Optional[float] = None) -> Optional[PendingGuess]:
        entry = self._find_pending(guess)
        if entry is not None:
            entry.status = STATUS_CONFIRMED
            entry.bulls = bulls
            entry.cows = cows
        self.prune(now)
        return entry

    def fail(self, guess: str) -> Optional[PendingGuess]:
        entry = self._find_pending(guess)
        if entry is not None:
            entry.status = STATUS_FAILED
        return entry

    def rollback(self, guess: str) -> bool:
        """删除该猜测最早一条未完成（pending 或 failed）的记录。"""
        for i, entry in enumerate(self.entries):
            if entry.guess == guess and entry.status != STATUS_CONFIRMED:
                del self.entries[i]
                return True
        return False

    def prune(self, now: Optional[float] = None) -> None:
        cutoff = (now if now is not None else time.time()) - self.ttl
        self.entries = [e for e in self.entries if not (e.status == STATUS_CONFIRMED and e.timestamp < cutoff)]

    def pending(self) -> List[PendingGuess]:
        return [e for e in self.entries if e.status == STATUS_PENDING]


__all__ = [
    "PendingUpdates",
    "PendingGuess",
    "PendingGuessLedger",
    "STATUS_PENDING",
    "STATUS_CONFIRMED",
    "STATUS_FAILED",
]
