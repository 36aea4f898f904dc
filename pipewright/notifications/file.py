"""File channel: append events to a local file."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pipewright._log import get_logger
from pipewright.notifications.base import NotificationEvent, NotificationSink

logger = get_logger("notify.file")


class FileSink(NotificationSink):
    def __init__(self, path: str, fmt: str = "json") -> None:
        self._path = Path(os.path.expandvars(path))
        self._format = fmt

    def send(self, event: NotificationEvent) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._format == "json":
                line = json.dumps(event.to_dict())
            else:
                line = f"[{event.timestamp}] {event.pipeline} | {event.event} | {event.subject}"
                if event.message:
                    line += f" | {event.message}"
            with self._path.open("a") as f:
                f.write(line + "\n")
        except Exception as exc:
            logger.error("Failed to write to %s: %s", self._path, exc)
