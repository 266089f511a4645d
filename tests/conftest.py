"""
Shared fixtures for the Bifrost test suite.
"""

from datetime import datetime, timedelta, timezone

import fakeredis
import mongomock
import pytest

from bifrost.tokenstore.memory import MemoryTokenStore
from bifrost.tokenstore.mongo import MongoConfig, MongoTokenStore
from bifrost.tokenstore.distributed import RedisTokenStore


CLOCK_TARGETS = [
    "bifrost.tokenstore.store.get_current_time",
    "bifrost.tokenstore.memory.get_current_time",
    "bifrost.tokenstore.mongo.get_current_time",
    "bifrost.tokenstore.distributed.get_current_time",
]


class FakeClock:
    """A controllable replacement for get_current_time."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class MongoClientFactory:
    """Hands out one shared mongomock client and counts open/close calls."""

    def __init__(self):
        self.client = mongomock.MongoClient()
        self.opened = 0
        self.closed = 0

    def __call__(self, *args, **kwargs):
        self.opened += 1
        return self

    def __getitem__(self, name):
        return self.client[name]

    def close(self):
        self.closed += 1


@pytest.fixture
def clock(monkeypatch):
    """Freeze token time at the current instant; advance it explicitly."""
    fake = FakeClock(datetime.now(timezone.utc))
    for target in CLOCK_TARGETS:
        monkeypatch.setattr(target, fake)
    return fake


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis(decode_responses=True)
    r.flushall()
    return r


@pytest.fixture
def memory_store():
    return MemoryTokenStore()


@pytest.fixture
def mongo_factory():
    return MongoClientFactory()


@pytest.fixture
def mongo_store(mongo_factory):
    return MongoTokenStore(MongoConfig(), client_factory=mongo_factory)


@pytest.fixture
def redis_store(fake_redis):
    return RedisTokenStore(redis_client=fake_redis)


@pytest.fixture(params=["memory", "mongo", "redis"])
def repository(request):
    """Every backend, for tests of behaviour the contract guarantees."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture(params=["memory", "mongo"])
def retaining_repository(request):
    """Backends without native expiry; expired records stay until deleted."""
    return request.getfixturevalue(f"{request.param}_store")
