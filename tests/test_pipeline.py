"""Tests del pipeline de ingesta."""

import json
from unittest.mock import MagicMock

import pytest

from alert_api.errors import AuthorizationError, MalformedInputError, StoreError
from alert_api.notifications.dispatcher import ChannelDispatcher
from alert_api.notifications.renderer import NotificationRenderer, RenderMode
from alert_api.pipeline import IngestionPipeline, PipelineState, parse_body

from .helpers import RecordingChannel

SECRET = "s3cret"


def build_pipeline(store, channels=(), clock=lambda: 1718000000000):
    return IngestionPipeline(
        secret=SECRET,
        store=store,
        dispatcher=ChannelDispatcher(list(channels)),
        clock=clock,
    )


class TestParseBody:

    def test_mapping_as_is(self):
        assert parse_body({"event": "x"}) == {"event": "x"}

    def test_json_string_and_bytes(self):
        assert parse_body('{"event": "x"}') == {"event": "x"}
        assert parse_body(b'{"event": "x"}') == {"event": "x"}

    @pytest.mark.parametrize("body", [None, "", b"", "   "])
    def test_empty_is_empty_object(self, body):
        assert parse_body(body) == {}

    @pytest.mark.parametrize("body", ["{not json", "[1, 2]", '"text"', b"\xff", "42"])
    def test_malformed(self, body):
        with pytest.raises(MalformedInputError):
            parse_body(body)


class TestAuthentication:

    def test_wrong_secret_has_no_side_effects(self):
        store = MagicMock()
        channel = RecordingChannel("chat", ["u1"])
        pipeline = build_pipeline(store, [channel])

        with pytest.raises(AuthorizationError):
            pipeline.process("wrong", {"event": "motion"})

        assert store.mock_calls == []
        assert channel.delivered == []

    @pytest.mark.parametrize("provided,expected", [(None, SECRET), ("", SECRET), (SECRET, ""), (None, None)])
    def test_absence_of_either_side_rejects(self, provided, expected):
        pipeline = IngestionPipeline(secret=expected, store=MagicMock(), dispatcher=ChannelDispatcher([]))
        with pytest.raises(AuthorizationError):
            pipeline.process(provided, {})

    def test_malformed_body_has_no_side_effects(self):
        store = MagicMock()
        channel = RecordingChannel("chat", ["u1"])
        with pytest.raises(MalformedInputError):
            build_pipeline(store, [channel]).process(SECRET, "{broken")
        assert store.mock_calls == []
        assert channel.delivered == []


class TestProcess:

    def test_end_to_end_record_and_digest(self, store):
        channel = RecordingChannel("chat", ["u1"])
        body = json.dumps({"event": "motion", "msg": "Temp: 20.0 C / 68.0 F, Humidity: 40", "ts": 1000})

        outcome = build_pipeline(store, [channel]).process(SECRET, body)

        stored = store.recent()[0]
        assert stored == outcome.record
        assert stored.device_timestamp == 1000
        assert stored.received_at == 1718000000000
        assert stored.metrics.to_dict() == {
            "temperatureC": 20.0,
            "temperatureF": 68.0,
            "humidityPercent": 40,
            "stepCount": None,
            "heartRateBpm": None,
        }
        assert channel.delivered[0][1].text == "ALERT: motion | T:20C/68F | H:40%"
        assert outcome.states == [
            PipelineState.UNAUTHENTICATED,
            PipelineState.AUTHENTICATED,
            PipelineState.PARSED,
            PipelineState.EXTRACTED,
            PipelineState.PERSISTED,
            PipelineState.DISPATCHED,
            PipelineState.RESPONDED,
        ]

    def test_defaults(self, store):
        outcome = build_pipeline(store).process(SECRET, {})
        record = outcome.record
        assert record.event_type == "unknown"
        assert record.message == ""
        assert record.device_timestamp is None
        assert record.id.startswith("1718000000000-")

    def test_ids_are_unique(self, store):
        pipeline = build_pipeline(store)
        ids = {pipeline.process(SECRET, {}).record.id for _ in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize("ts,expected", [(1000, 1000), (12.9, 12), ("77", 77), ("abc", None), (True, None)])
    def test_device_timestamp_is_opaque(self, store, ts, expected):
        outcome = build_pipeline(store).process(SECRET, {"ts": ts})
        assert outcome.record.device_timestamp == expected

    def test_store_failure_still_dispatches(self, broken_store):
        channel = RecordingChannel("chat", ["u1"])

        outcome = build_pipeline(broken_store, [channel]).process(SECRET, {"event": "fall"})

        assert outcome.kv_ok is False
        assert PipelineState.PERSIST_FAILED in outcome.states
        assert len(channel.delivered) == 1
        response = outcome.to_response()
        assert response["ok"] is True
        assert response["kvOk"] is False
        assert "kvError" in response

    def test_missing_store_still_dispatches(self):
        channel = RecordingChannel("chat", ["u1"])
        outcome = build_pipeline(None, [channel]).process(SECRET, {})
        assert outcome.kv_ok is False
        assert len(channel.delivered) == 1

    def test_unexpected_store_exception_is_absorbed(self):
        store = MagicMock()
        store.append.side_effect = RuntimeError("weird")
        outcome = build_pipeline(store).process(SECRET, {})
        assert outcome.kv_ok is False

    def test_channel_failure_still_acknowledged(self, store):
        good = RecordingChannel("chat", ["u1"])
        bad = RecordingChannel("email", ["ops@x"], mode=RenderMode.REPORT, fail_on={"ops@x"})

        outcome = build_pipeline(store, [good, bad]).process(SECRET, {"event": "motion"})

        response = outcome.to_response()
        assert response["ok"] is True
        assert response["kvOk"] is True
        by_channel = {c["channel"]: c for c in response["channels"]}
        assert by_channel["chat"]["ok"] is True
        assert by_channel["email"]["ok"] is False

    def test_store_error_type(self, broken_store):
        with pytest.raises(StoreError):
            broken_store.append(build_pipeline(None).build_record({}))

    def test_huge_integer_timestamp_is_kept(self, store):
        body = '{"event":"x","ts":' + "9" * 400 + "}"

        outcome = build_pipeline(store).process(SECRET, body)

        assert outcome.to_response()["ok"] is True
        assert outcome.record.device_timestamp == int("9" * 400)
        assert store.recent()[0].device_timestamp == int("9" * 400)

    def test_huge_integer_metric_counts_as_absent(self, store):
        outcome = build_pipeline(store).process(SECRET, '{"steps":' + "9" * 400 + "}")
        assert outcome.record.metrics.step_count is None


# =============================================================================
# AISLAMIENTO ENTRE MODOS DE RENDER
# =============================================================================

class TestRenderIsolation:

    def test_extreme_temperature_reaches_every_channel(self, store):
        chat = RecordingChannel("chat", ["u1"])
        mail = RecordingChannel("email", ["ops@x"], mode=RenderMode.REPORT)

        outcome = build_pipeline(store, [chat, mail]).process(SECRET, '{"event":"x","tempC":1e308}')

        assert len(mail.delivered) == 1
        assert len(chat.delivered) == 1
        assert chat.delivered[0][1].text == "ALERT: x"
        assert all(r.ok for r in outcome.deliveries)

    def test_failed_mode_only_fails_its_channels(self, store):
        real = NotificationRenderer()

        def render(record, mode):
            if mode is RenderMode.DIGEST:
                raise RuntimeError("digest broke")
            return real.render(record, mode)

        renderer = MagicMock()
        renderer.render.side_effect = render
        chat = RecordingChannel("chat", ["u1"])
        mail = RecordingChannel("email", ["ops@x"], mode=RenderMode.REPORT)
        pipeline = IngestionPipeline(
            secret=SECRET,
            store=store,
            dispatcher=ChannelDispatcher([chat, mail]),
            renderer=renderer,
            clock=lambda: 1718000000000,
        )

        outcome = pipeline.process(SECRET, {"event": "fall"})

        assert len(mail.delivered) == 1
        assert chat.delivered == []
        by_channel = {r.channel: r for r in outcome.deliveries}
        assert by_channel["email"].ok is True
        assert by_channel["chat"].ok is False
        assert by_channel["chat"].error == "missing digest payload"
        assert outcome.kv_ok is True

    def test_multiline_event_type_is_delivered(self, store):
        chat = RecordingChannel("chat", ["u1"])
        mail = RecordingChannel("email", ["ops@x"], mode=RenderMode.REPORT)

        build_pipeline(store, [chat, mail]).process(SECRET, {"event": "fall\ndetected"})

        assert mail.delivered[0][1].subject == "Device Alert: fall detected"
        assert chat.delivered[0][1].text == "ALERT: fall detected"
        assert store.recent()[0].event_type == "fall\ndetected"
