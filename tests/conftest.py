"""
Pytest fixtures for weather widget tests.
"""
import threading
from unittest.mock import MagicMock

import pytest

from weatherwidget.core.cache import MemoryCacheStore
from weatherwidget.core.db import init_db, reset_db
from weatherwidget.core.task_manager import TaskManager
from weatherwidget.weather.fetcher import WeatherFetcher
from weatherwidget.weather.hooks import WeatherHooks
from weatherwidget.weather.invalidation import CacheInvalidationPolicy
from weatherwidget.weather.refresh import RefreshController
from weatherwidget.weather.vault import AesCbcVault
from weatherwidget.weather.widget import WeatherWidget

AUTH_KEY = "auth-secret-for-tests"
NONCE_KEY = "nonce-secret-for-tests"

LONDON_PAYLOAD = {
    "name": "London",
    "weather": [{"id": 803, "main": "Clouds", "description": "broken clouds", "icon": "04d"}],
    "main": {
        "temp": 12.5,
        "feels_like": 11.4,
        "temp_min": 10.2,
        "temp_max": 14.6,
        "humidity": 72,
        "pressure": 1013,
    },
    "wind": {"speed": 4.1, "deg": 240},
    "visibility": 10000,
}


class FakeClock:
    """Callable clock for MemoryCacheStore; advance() moves time forward."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    """Stands in for threading.Timer: records instead of starting a thread."""

    def __init__(self, delay, function, args):
        self.delay = delay
        self.function = function
        self.args = args
        self.started = False
        self.cancelled = False
        self.finished = threading.Event()

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True
        self.finished.set()

    def fire(self):
        self.function(*self.args)
        self.finished.set()


class RecordingTaskManager(TaskManager):
    def __init__(self):
        super().__init__()
        self.created = []

    def _create_timer(self, delay, function, args):
        timer = FakeTimer(delay, function, args)
        self.created.append(timer)
        return timer


def make_response(status_code=200, body=None, invalid_json=False):
    response = MagicMock()
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def db():
    """Fresh in-memory database for each test."""
    reset_db()
    init_db(db_url="sqlite://")
    yield
    reset_db()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def hooks():
    return WeatherHooks()


@pytest.fixture
def fetcher(cache, hooks):
    return WeatherFetcher(cache, hooks=hooks)


@pytest.fixture
def vault(db):
    return AesCbcVault(AUTH_KEY, NONCE_KEY)


@pytest.fixture
def task_manager():
    manager = RecordingTaskManager()
    yield manager
    manager.stop()


@pytest.fixture
def invalidation(cache):
    return CacheInvalidationPolicy(cache)


@pytest.fixture
def refresh(db, task_manager, vault, fetcher):
    return RefreshController(task_manager, vault, fetcher)


@pytest.fixture
def widget(fetcher, vault, invalidation, refresh, hooks):
    return WeatherWidget(fetcher, vault, invalidation, refresh, hooks=hooks)
