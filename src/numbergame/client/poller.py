"""
轮询与重连

- RepeatingTimer: 守护线程驱动的定时轮询，可随时调整间隔或停止
- call_later: 延迟执行一次（单次重试、恢复期结束等）
- ConnectivityMonitor: 断网后按 2s/4s/6s 递增延迟探测服务器，恢复后回调
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from numbergame.shared.constants import CONNECTIVITY_MAX_RETRIES, CONNECTIVITY_RETRY_STEP

logger = logging.getLogger(__name__)

# 调度器签名：scheduler(delay_seconds, fn)
Scheduler = Callable[[float, Callable[[], None]], object]


def call_later(delay: float, fn: Callable[[], None]) -> threading.Timer:
    """在守护线程中延迟 delay 秒执行 fn。"""
    timer = threading.Timer(delay, fn)
    timer.daemon = True
    timer.start()
    return timer


class RepeatingTimer:
    """按固定间隔重复调用 callback，直到 stop()。"""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "poller", immediate: bool = True) -> None:
        self.interval = interval
        self.callback = callback
        self.name = name
        self.immediate = immediate
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def set_interval(self, interval: float) -> None:
        """调整间隔，立即生效（打断当前等待）。"""
        if interval == self.interval:
            return
        self.interval = interval
        self._wake.set()

    def stop(self) -> None:
        self._stop.set()
        self._wake.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None

    def _loop(self) -> None:
        if self.immediate:
            self._tick()
        while not self._stop.is_set():
            self._wake.clear()
            woke = self._wake.wait(self.interval)
            if self._stop.is_set():
                break
            if woke:
                # 间隔被修改，重新计时
                continue
            self._tick()

    def _tick(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("%s tick failed", self.name)


class ConnectivityMonitor:
    """断网后的重连序列：最多 3 次，延迟依次为 2s、4s、6s。"""

    def __init__(
        self,
        check: Callable[[], bool],
        on_restored: Optional[Callable[[], None]] = None,
        scheduler: Scheduler = call_later,
        max_retries: int = CONNECTIVITY_MAX_RETRIES,
        step: float = CONNECTIVITY_RETRY_STEP,
    ) -> None:
        self.check = check
        self.on_restored = on_restored
        self.scheduler = scheduler
        self.max_retries = max_retries
        self.step = step
        self.retry_count = 0
        self.is_retrying = False
        self._lock = threading.Lock()

    def report_offline(self) -> bool:
        """报告一次断网。已有重试序列在进行时忽略，返回是否启动了新序列。"""
        with self._lock:
            if self.is_retrying:
                return False
            self.is_retrying = True
            self.retry_count = 0
        logger.info("Network appears to be offline, starting retry sequence")
        self._schedule_next()
        return True

    def _schedule_next(self) -> None:
        with self._lock:
            if self.retry_count >= self.max_retries:
                logger.warning("Max retries reached, giving up")
                self.is_retrying = False
                return
            self.retry_count += 1
            delay = self.retry_count * self.step
            attempt = self.retry_count
        logger.info("Retry attempt %d/%d in %.1fs", attempt, self.max_retries, delay)
        self.scheduler(delay, self._attempt)

    def _attempt(self) -> None:
        if not self.check():
            self._schedule_next()
            return
        with self._lock:
            self.is_retrying = False
            self.retry_count = 0
        logger.info("Network connection restored")
        if self.on_restored:
            self.on_restored()


__all__ = ["RepeatingTimer", "ConnectivityMonitor", "call_later", "Scheduler"]
