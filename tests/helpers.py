"""Dobles de test y constructores compartidos."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

import redis

from common.config import Settings
from alert_api.core.domain.event import EventRecord, MetricSet
from alert_api.errors import ChannelDeliveryError
from alert_api.notifications.channels import NotificationChannel
from alert_api.notifications.renderer import RenderMode


class FakeRedisList:
    """Doble en memoria de la interfaz de listas de redis-py."""

    def __init__(self, fail: bool = False):
        self.lists: Dict[str, List[str]] = {}
        self.fail = fail
        self.calls: List[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.fail:
            raise redis.ConnectionError("connection refused")

    def lpush(self, key, *values):
        self._check("lpush")
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    def ltrim(self, key, start, end):
        self._check("ltrim")
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        self.lists[key] = items[start:stop]
        return True

    def lrange(self, key, start, end):
        self._check("lrange")
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    def pipeline(self, transaction=True):
        return _FakePipeline(self)


class _FakePipeline:
    def __init__(self, client: FakeRedisList):
        self._client = client
        self._ops = []

    def lpush(self, *args):
        self._ops.append(("lpush", args))
        return self

    def ltrim(self, *args):
        self._ops.append(("ltrim", args))
        return self

    def execute(self):
        return [getattr(self._client, op)(*args) for op, args in self._ops]


class RecordingChannel(NotificationChannel):
    """Canal de test: guarda cada entrega y falla en los destinos indicados."""

    def __init__(
        self,
        name: str,
        destinations,
        mode: RenderMode = RenderMode.DIGEST,
        fail_on=(),
        block: Optional[threading.Event] = None,
    ):
        super().__init__(destinations)
        self.name = name
        self.mode = mode
        self._fail_on = set(fail_on)
        self._block = block
        self.delivered: List[tuple] = []
        self._lock = threading.Lock()

    def deliver(self, record, payload, destination):
        if self._block is not None:
            self._block.wait(5)
        if destination in self._fail_on:
            raise ChannelDeliveryError(self.name, destination, "HTTP 500: boom")
        with self._lock:
            self.delivered.append((record, payload, destination))


def make_settings(**overrides) -> Settings:
    values = dict(
        webhook_secret="s3cret",
        redis_url="redis://localhost:6379/0",
        history_key="events",
        history_capacity=50,
        smtp_host="",
        smtp_port=587,
        smtp_user="",
        smtp_password="",
        smtp_starttls=False,
        mail_from="",
    )
    values.update(overrides)
    return Settings(**values)


def make_record(
    idx: int = 0,
    event_type: str = "motion",
    metrics: Optional[MetricSet] = None,
    device_ts: Optional[int] = 1000,
) -> EventRecord:
    received_at = 1718000000000 + idx
    return EventRecord(
        id=f"{received_at}-abcd{idx:04d}",
        event_type=event_type,
        message=f"event {idx}",
        received_at=received_at,
        device_timestamp=device_ts,
        metrics=metrics or MetricSet(),
    )


