"""Webhook channel: POST the event as JSON to a URL."""

from __future__ import annotations

import os
import time

import httpx

from pipewright import __version__
from pipewright._log import get_logger
from pipewright.notifications.base import NotificationEvent, NotificationSink

logger = get_logger("notify.webhook")


class WebhookSink(NotificationSink):
    """Deliver events to a chat or approval bot.

    ``$VARS`` in the URL and header values are expanded once, here, so tokens
    can stay out of the manifest. Receivers can route on the
    ``X-Pipewright-Event`` header without parsing the body.
    """

    def __init__(
        self,
        url: str,
        method: str = "POST",
        headers: dict[str, str] | None = None,
        timeout_seconds: int = 30,
        retry_count: int = 0,
    ) -> None:
        self._url = os.path.expandvars(url)
        self._method = method
        self._headers = {k: os.path.expandvars(v) for k, v in (headers or {}).items()}
        self._timeout = timeout_seconds
        self._retry_count = retry_count

    def _request_headers(self, event: NotificationEvent) -> dict[str, str]:
        return {
            "User-Agent": f"pipewright/{__version__}",
            "X-Pipewright-Event": str(event.event),
            **self._headers,
        }

    def send(self, event: NotificationEvent) -> None:
        attempts = 1 + self._retry_count
        headers = self._request_headers(event)
        last_err: Exception | None = None

        with httpx.Client(timeout=self._timeout) as client:
            for attempt in range(attempts):
                try:
                    response = client.request(
                        self._method,
                        self._url,
                        json=event.to_dict(),
                        headers=headers,
                    )
                    response.raise_for_status()
                    return
                except Exception as exc:
                    last_err = exc
                    logger.debug("%s attempt %d failed: %s", event.event, attempt + 1, exc)
                    if attempt < attempts - 1:
                        time.sleep(1)

        logger.error(
            "Could not deliver %s for '%s' after %d attempt(s): %s",
            event.event,
            event.pipeline,
            attempts,
            last_err,
        )
