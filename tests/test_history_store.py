"""Tests del historial acotado."""

import json

import pytest

from alert_api.core.domain.event import MetricSet
from alert_api.errors import StoreError
from alert_api.history.store import HistoryStore

from .helpers import FakeRedisList, make_record


class TestAppendAndTrim:

    def test_capacity_plus_five_evicts_oldest(self, store, fake_redis):
        """N+5 appends dejan exactamente N registros, newest-first."""
        n = store.capacity
        records = [make_record(i) for i in range(n + 5)]
        for record in records:
            store.append(record)

        recent = store.recent(n)

        assert len(recent) == n
        assert [r.id for r in recent] == [r.id for r in reversed(records[5:])]
        assert len(fake_redis.lists["events"]) == n

    def test_append_pushes_then_trims(self, store, fake_redis):
        store.append(make_record(1))
        assert fake_redis.calls == ["lpush", "ltrim"]

    def test_roundtrip_preserves_record(self, store):
        record = make_record(3, metrics=MetricSet(temperature_c=20.0, step_count=5))
        store.append(record)
        assert store.recent(1) == [record]

    def test_persisted_json_is_camel_case(self, store, fake_redis):
        store.append(make_record(1, metrics=MetricSet(humidity_percent=40.0)))
        data = json.loads(fake_redis.lists["events"][0])

        assert data["eventType"] == "motion"
        assert data["receivedAt"] == 1718000000001
        assert data["metrics"] == {
            "temperatureC": None,
            "temperatureF": None,
            "humidityPercent": 40.0,
            "stepCount": None,
            "heartRateBpm": None,
        }

    def test_overfull_list_self_heals_on_next_append(self, fake_redis):
        """Una lista con más de N elementos (crash entre LPUSH y LTRIM) se recorta."""
        store = HistoryStore(fake_redis, capacity=3)
        fake_redis.lists["events"] = [
            json.dumps(make_record(i).to_dict()) for i in range(10)
        ]
        store.append(make_record(99))
        assert len(fake_redis.lists["events"]) == 3

    def test_invalid_capacity(self, fake_redis):
        with pytest.raises(ValueError):
            HistoryStore(fake_redis, capacity=0)


class TestRecent:

    def test_corrupt_items_are_skipped(self, store, fake_redis):
        good = make_record(1)
        fake_redis.lists["events"] = [
            "not json",
            json.dumps(good.to_dict()),
            json.dumps({"foreign": True}),
            json.dumps([1, 2, 3]),
            b"\xff\xfe",
        ]

        assert store.recent() == [good]

    def test_wrongly_shaped_fields_are_skipped(self, store, fake_redis):
        """Items de otros productores con tipos inesperados se descartan."""
        good = make_record(2)
        fake_redis.lists["events"] = [
            json.dumps({"id": "x", "eventType": "e", "receivedAt": 1, "metrics": [1]}),
            '{"id":"x","eventType":"e","receivedAt":Infinity}',
            '{"id":"x","eventType":"e","receivedAt":1,"metrics":{"stepCount":Infinity}}',
            json.dumps(good.to_dict()),
        ]

        assert store.recent() == [good]

    def test_last_skips_foreign_head(self, store, fake_redis):
        good = make_record(3)
        fake_redis.lists["events"] = [
            '{"id":"x","eventType":"e","receivedAt":-Infinity}',
            json.dumps(good.to_dict()),
        ]

        assert store.last() == good

    def test_limit_is_capped_at_capacity(self, fake_redis):
        store = HistoryStore(fake_redis, capacity=2)
        for i in range(2):
            store.append(make_record(i))
        assert len(store.recent(100)) == 2

    def test_zero_limit(self, store):
        store.append(make_record(1))
        assert store.recent(0) == []

    def test_empty_store(self, store):
        assert store.recent() == []
        assert store.last() is None

    def test_last_is_head(self, store):
        for i in range(3):
            store.append(make_record(i))
        assert store.last().id == make_record(2).id


class TestBackendFailure:

    def test_append_raises_store_error(self, broken_store):
        with pytest.raises(StoreError):
            broken_store.append(make_record(1))

    def test_recent_raises_store_error(self):
        store = HistoryStore(FakeRedisList(fail=True))
        with pytest.raises(StoreError):
            store.recent()
