"""Base types for the notification system."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import StrEnum


class EventType(StrEnum):
    APPROVAL_REQUESTED = "approval-requested"
    APPROVAL_APPROVED = "approval-approved"
    APPROVAL_REJECTED = "approval-rejected"
    PIPELINE_SUCCEEDED = "pipeline-succeeded"
    PIPELINE_FAILED = "pipeline-failed"


APPROVAL_EVENTS = (
    EventType.APPROVAL_REQUESTED,
    EventType.APPROVAL_APPROVED,
    EventType.APPROVAL_REJECTED,
)
PIPELINE_EVENTS = (EventType.PIPELINE_SUCCEEDED, EventType.PIPELINE_FAILED)


@dataclass
class NotificationEvent:
    event: str
    pipeline: str
    subject: str
    message: str = ""
    run_id: str = ""
    details: dict[str, str] = field(default_factory=dict)
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            from datetime import UTC, datetime

            self.timestamp = datetime.now(UTC).isoformat()

    def to_dict(self) -> dict:
        return asdict(self)


class NotificationSink(ABC):
    """Abstract base for all channels. Must never raise from send()."""

    @abstractmethod
    def send(self, event: NotificationEvent) -> None: ...
