"""
Pytest configuration and shared fixtures for the numbergame client.
"""

import json
import os
import sys

import pytest

# Add src to path for testing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from numbergame.client.errors import NetworkError  # noqa: E402
from numbergame.shared.protocols import (  # noqa: E402
    GuessResponse,
    GuessResult,
    HistoryResponse,
    JoinResponse,
    PlayerInfo,
    RoomSnapshot,
    StatusResponse,
)


class FakeRequest:
    def __init__(self, method):
        self.method = method


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, json_data=None, status_code=200, text=None, url="http://test/api", method="GET"):
        self.status_code = status_code
        self.text = text if text is not None else (json.dumps(json_data) if json_data is not None else "")
        self.url = url
        self.request = FakeRequest(method)

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Records requests and replays queued responses per endpoint path."""

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.routes = {}
        self.closed = False

    def add(self, path, response):
        """Queue a FakeResponse or an exception for an endpoint. The last item repeats."""
        self.routes.setdefault(path, []).append(response)

    def request(self, method, url, json=None, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "params": params, "timeout": timeout})
        for path, queue in self.routes.items():
            if url.endswith(path):
                item = queue.pop(0) if len(queue) > 1 else queue[0]
                if isinstance(item, Exception):
                    raise item
                item.url = url
                item.request = FakeRequest(method)
                return item
        raise AssertionError(f"unexpected request {method} {url}")

    def close(self):
        self.closed = True


class ManualScheduler:
    """Collects delayed calls so tests can run them explicitly."""

    def __init__(self):
        self.pending = []

    def __call__(self, delay, fn):
        self.pending.append((delay, fn))

    @property
    def delays(self):
        return [d for d, _ in self.pending]

    def run_next(self):
        _, fn = self.pending.pop(0)
        fn()

    def run_delay(self, delay):
        """Run the first pending call scheduled with the given delay."""
        for i, (d, fn) in enumerate(self.pending):
            if d == delay:
                del self.pending[i]
                fn()
                return
        raise AssertionError(f"nothing scheduled with delay {delay}")

    def run_all(self, limit=20):
        while self.pending and limit:
            self.run_next()
            limit -= 1


class FakeTimer:
    """RepeatingTimer replacement ticked by hand."""

    def __init__(self, interval, callback, name="poller", immediate=True):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.started = False
        self.stopped = False

    @property
    def running(self):
        return self.started and not self.stopped

    def start(self):
        self.started = True

    def set_interval(self, interval):
        self.interval = interval

    def stop(self):
        self.stopped = True

    def tick(self):
        self.callback()


class StubApi:
    """In-memory GameApiClient replacement for session-level tests."""

    def __init__(self):
        self.calls = []
        self.guess_results = []
        self.statuses = []
        self.histories = []
        self.join_response = JoinResponse(room_id="room-1", player_id="p1", position=1, game_state="WAITING")
        self.healthy = True
        self.fail_with = {}

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        exc = self.fail_with.get(name)
        if exc is not None:
            raise exc

    @staticmethod
    def _next(queue, default=None):
        if not queue:
            return default
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def names(self):
        return [c[0] for c in self.calls]

    def check_health(self):
        self.calls.append(("check_health",))
        return self.healthy

    def join_room(self, player_name):
        self._record("join_room", player_name)
        return self.join_response

    def fetch_status(self, room_id, player_id):
        self._record("fetch_status", room_id, player_id)
        return self._next(self.statuses, make_status())

    def select_digits(self, room_id, player_id, digits):
        self._record("select_digits", room_id, player_id, digits)
        return {"success": True, "gameState": "SECRET_SETTING"}

    def set_secret(self, room_id, player_id, secret):
        self._record("set_secret", room_id, player_id, secret)
        return {"success": True, "gameState": "SECRET_SETTING"}

    def submit_guess(self, room_id, player_id, guess):
        self._record("submit_guess", room_id, player_id, guess)
        return self._next(self.guess_results, guess_response(0, 0, turn="p2"))

    def fetch_history(self, room_id, player_id):
        self._record("fetch_history", room_id, player_id)
        return self._next(self.histories, HistoryResponse(history=[]))

    def assign_turn(self, room_id, player_id, turn_player):
        self._record("assign_turn", room_id, player_id, turn_player)
        return {"success": True}

    def practice_complete(self, room_id, player_id, discovered_secret):
        self._record("practice_complete", room_id, player_id, discovered_secret)
        return {"success": True}

    def leave(self, room_id, player_id):
        self.calls.append(("leave", room_id, player_id))

    def close(self):
        self.calls.append(("close",))


def guess_response(bulls, cows, correct=False, turn=None, state=None, winner=None):
    return GuessResponse(
        result=GuessResult(bulls=bulls, cows=cows, is_correct=correct),
        current_turn=turn,
        game_state=state,
        winner=winner,
    )


def make_status(state="PLAYING", turn="p1", players=None, room_id="room-1", **extra):
    if players is None:
        players = [PlayerInfo("p1", "Alice", 4), PlayerInfo("p2", "Bob", 4)]
    room = RoomSnapshot(room_id=room_id, game_state=state, current_turn=turn, players=players, current_player_count=len(players))
    return StatusResponse(room=room, **extra)


def offline_error():
    return NetworkError("connection refused", offline=True)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def timers():
    """Factory for FakeTimer that remembers every timer it created."""
    created = []

    def factory(interval, callback, name="poller", immediate=True):
        timer = FakeTimer(interval, callback, name=name, immediate=immediate)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def stub_api():
    return StubApi()


@pytest.fixture
def events():
    """Collects (event, payload) pairs from on_ui subscriptions."""
    collected = []

    def subscribe(target, *names):
        for name in names:
            target.on_ui(name, lambda payload, name=name: collected.append((name, payload)))
        return collected

    subscribe.collected = collected
    return subscribe
