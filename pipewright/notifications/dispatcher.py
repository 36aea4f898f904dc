"""Channel registry: builds sinks from config and routes events to them."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from pipewright._log import get_logger
from pipewright.notifications.base import NotificationEvent, NotificationSink
from pipewright.pipeline.schema import ChannelConfig, FileChannelConfig, WebhookChannelConfig

logger = get_logger("notify.dispatcher")


def _build_webhook_sink(config: WebhookChannelConfig) -> NotificationSink:
    from pipewright.notifications.webhook import WebhookSink

    return WebhookSink(
        url=config.url,
        method=config.method,
        headers=config.headers,
        timeout_seconds=config.timeout_seconds,
        retry_count=config.retry_count,
    )


def _build_file_sink(config: FileChannelConfig) -> NotificationSink:
    from pipewright.notifications.file import FileSink

    return FileSink(path=config.path, fmt=config.format)


_SINK_BUILDERS: dict[type, Callable[..., NotificationSink]] = {
    WebhookChannelConfig: _build_webhook_sink,
    FileChannelConfig: _build_file_sink,
}


def build_sink(config: ChannelConfig) -> NotificationSink | None:
    """Build a sink instance from a channel config. Returns None if unknown type."""
    builder = _SINK_BUILDERS.get(type(config))
    return builder(config) if builder else None


class NotificationDispatcher:
    """Deliver events to named channels.

    Delivery failures are logged and never propagate to the caller.
    """

    def __init__(self, sinks: Mapping[str, NotificationSink] | None = None) -> None:
        self._sinks: dict[str, NotificationSink] = dict(sinks or {})

    @classmethod
    def from_configs(cls, channels: Mapping[str, ChannelConfig]) -> NotificationDispatcher:
        sinks: dict[str, NotificationSink] = {}
        for name, config in channels.items():
            sink = build_sink(config)
            if sink:
                sinks[name] = sink
        return cls(sinks)

    def add_sink(self, channel: str, sink: NotificationSink) -> None:
        self._sinks[channel] = sink

    def dispatch(self, channel: str, event: NotificationEvent) -> None:
        sink = self._sinks.get(channel)
        if sink is None:
            logger.warning("No sink for channel '%s'; dropping %s", channel, event.event)
            return
        try:
            sink.send(event)
        except Exception as exc:
            logger.error("Channel '%s' (%s) failed: %s", channel, type(sink).__name__, exc)

    @property
    def channels(self) -> list[str]:
        return sorted(self._sinks)
