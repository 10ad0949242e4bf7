"""Fixtures compartidas."""

from __future__ import annotations

import pytest

from common.config import Settings
from alert_api.history.store import HistoryStore

from .helpers import FakeRedisList, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_redis() -> FakeRedisList:
    return FakeRedisList()


@pytest.fixture
def store(fake_redis) -> HistoryStore:
    return HistoryStore(fake_redis, key="events", capacity=50)


@pytest.fixture
def broken_store() -> HistoryStore:
    return HistoryStore(FakeRedisList(fail=True), key="events", capacity=50)
