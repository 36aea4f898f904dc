"""Tests for notification channels."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import httpx

from pipewright import __version__
from pipewright.notifications.base import EventType, NotificationEvent, NotificationSink
from pipewright.notifications.dispatcher import NotificationDispatcher, build_sink
from pipewright.notifications.file import FileSink
from pipewright.notifications.webhook import WebhookSink
from pipewright.pipeline.schema import FileChannelConfig, WebhookChannelConfig


def _event(**overrides) -> NotificationEvent:
    defaults = {
        "event": EventType.APPROVAL_REQUESTED,
        "pipeline": "maps-pipeline",
        "subject": "DeployToTest/ManualApprovalOfTestEnvironment",
        "message": "Approve or Reject this change after testing",
        "run_id": "abc123",
        "timestamp": "2025-01-01T00:00:00+00:00",
    }
    defaults.update(overrides)
    return NotificationEvent(**defaults)


class TestNotificationEvent:
    def test_to_dict(self):
        d = _event().to_dict()
        assert d["event"] == "approval-requested"
        assert d["subject"] == "DeployToTest/ManualApprovalOfTestEnvironment"

    def test_timestamp_filled(self):
        e = NotificationEvent(event=EventType.PIPELINE_FAILED, pipeline="p", subject="p")
        assert e.timestamp


class TestWebhookSink:
    def test_posts_json(self):
        with patch("pipewright.notifications.webhook.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            WebhookSink(url="https://hooks.example.com/x").send(_event())
        client.request.assert_called_once()
        args, kwargs = client.request.call_args
        assert args == ("POST", "https://hooks.example.com/x")
        assert kwargs["json"]["run_id"] == "abc123"

    def test_expands_env(self, monkeypatch):
        monkeypatch.setenv("HOOK_URL", "https://hooks.example.com/y")
        monkeypatch.setenv("HOOK_TOKEN", "t0k")
        with patch("pipewright.notifications.webhook.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            WebhookSink(url="${HOOK_URL}", headers={"Authorization": "Bearer ${HOOK_TOKEN}"}).send(
                _event()
            )
        args, kwargs = client.request.call_args
        assert args[1] == "https://hooks.example.com/y"
        assert kwargs["headers"]["Authorization"] == "Bearer t0k"

    def test_event_headers(self):
        with patch("pipewright.notifications.webhook.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            WebhookSink(url="https://hooks.example.com/x").send(_event())
        headers = client.request.call_args.kwargs["headers"]
        assert headers["X-Pipewright-Event"] == "approval-requested"
        assert headers["User-Agent"] == f"pipewright/{__version__}"

    def test_failure_never_raises(self):
        with (
            patch("pipewright.notifications.webhook.httpx.Client") as client_cls,
            patch("pipewright.notifications.webhook.time.sleep") as sleep,
        ):
            client = client_cls.return_value.__enter__.return_value
            client.request.side_effect = httpx.ConnectError("down")
            WebhookSink(url="https://hooks.example.com/x", retry_count=2).send(_event())
        assert client.request.call_count == 3
        assert sleep.call_count == 2


class TestFileSink:
    def test_json_lines(self, tmp_path):
        path = tmp_path / "out" / "events.jsonl"
        sink = FileSink(str(path))
        sink.send(_event())
        sink.send(_event(event=EventType.APPROVAL_APPROVED))
        lines = path.read_text().splitlines()
        assert [json.loads(line)["event"] for line in lines] == [
            "approval-requested",
            "approval-approved",
        ]

    def test_text_format(self, tmp_path):
        path = tmp_path / "events.log"
        FileSink(str(path), fmt="text").send(_event())
        assert path.read_text() == (
            "[2025-01-01T00:00:00+00:00] maps-pipeline | approval-requested | "
            "DeployToTest/ManualApprovalOfTestEnvironment | "
            "Approve or Reject this change after testing\n"
        )

    def test_unwritable_path_never_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        FileSink(str(blocker / "events.jsonl")).send(_event())


class _Boom(NotificationSink):
    def send(self, event):
        raise RuntimeError("boom")


class TestDispatcher:
    def test_build_sink(self):
        assert isinstance(build_sink(WebhookChannelConfig(url="https://x")), WebhookSink)
        assert isinstance(build_sink(FileChannelConfig(path="/tmp/x")), FileSink)

    def test_from_configs(self):
        d = NotificationDispatcher.from_configs(
            {"hook": WebhookChannelConfig(url="https://x"), "log": FileChannelConfig(path="/x")}
        )
        assert d.channels == ["hook", "log"]

    def test_routes_to_channel(self):
        sink = MagicMock(spec=NotificationSink)
        d = NotificationDispatcher({"approvals": sink})
        event = _event()
        d.dispatch("approvals", event)
        sink.send.assert_called_once_with(event)

    def test_unknown_channel_dropped(self):
        NotificationDispatcher().dispatch("nowhere", _event())

    def test_sink_error_is_contained(self):
        d = NotificationDispatcher()
        d.add_sink("bad", _Boom())
        d.dispatch("bad", _event())
