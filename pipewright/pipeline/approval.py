"""Approval gate state machine.

A gate starts ``pending`` and moves once, to ``approved`` or ``rejected``.
Rejection is an expected business outcome: it is reported as a
:class:`RejectionOutcome` value, never raised.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pipewright._log import get_logger
from pipewright.notifications.base import EventType, NotificationEvent
from pipewright.pipeline.model import ApprovalGate

if TYPE_CHECKING:
    from pipewright.notifications.dispatcher import NotificationDispatcher

logger = get_logger("pipeline.approval")


class GateState(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalStateError(Exception):
    """Raised on a decision the gate cannot accept."""


@dataclass(frozen=True)
class ApprovalDecision:
    gate: str
    approved: bool
    reviewer: str = ""
    comment: str = ""


@dataclass(frozen=True)
class RejectionOutcome:
    gate: str
    reviewer: str = ""
    comment: str = ""


class ApprovalGateController:
    def __init__(
        self,
        gate: ApprovalGate,
        *,
        pipeline: str = "",
        run_id: str = "",
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._gate = gate
        self._pipeline = pipeline
        self._run_id = run_id
        self._dispatcher = dispatcher
        self._state = GateState.PENDING
        self._decision: ApprovalDecision | None = None
        self._lock = threading.Lock()

    @property
    def gate(self) -> ApprovalGate:
        return self._gate

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state is not GateState.PENDING

    @property
    def rejection(self) -> RejectionOutcome | None:
        if self._state is GateState.REJECTED and self._decision is not None:
            return RejectionOutcome(
                gate=self._gate.id,
                reviewer=self._decision.reviewer,
                comment=self._decision.comment,
            )
        return None

    def request(self) -> None:
        """Announce that the gate is waiting for a decision."""
        if self.is_terminal:
            raise ApprovalStateError(f"Gate '{self._gate.id}' is already {self._state}")
        self._notify(EventType.APPROVAL_REQUESTED, self._gate.additional_information)

    def decide(self, decision: ApprovalDecision) -> GateState:
        if decision.gate != self._gate.id:
            raise ApprovalStateError(
                f"Decision for '{decision.gate}' sent to gate '{self._gate.id}'"
            )
        with self._lock:
            if self.is_terminal:
                raise ApprovalStateError(f"Gate '{self._gate.id}' is already {self._state}")
            self._decision = decision
            self._state = GateState.APPROVED if decision.approved else GateState.REJECTED

        logger.info(
            "Gate %s %s by %s", self._gate.id, self._state, decision.reviewer or "(unknown)"
        )
        event = (
            EventType.APPROVAL_APPROVED
            if self._state is GateState.APPROVED
            else EventType.APPROVAL_REJECTED
        )
        self._notify(event, decision.comment)
        return self._state

    def approve(self, reviewer: str = "", comment: str = "") -> GateState:
        return self.decide(ApprovalDecision(self._gate.id, True, reviewer, comment))

    def reject(self, reviewer: str = "", comment: str = "") -> GateState:
        return self.decide(ApprovalDecision(self._gate.id, False, reviewer, comment))

    def _notify(self, event: EventType, message: str) -> None:
        channel = self._gate.notification_channel
        if self._dispatcher is None or channel is None:
            return
        details = {"stage": self._gate.stage}
        if self._decision is not None and self._decision.reviewer:
            details["reviewer"] = self._decision.reviewer
        self._dispatcher.dispatch(
            channel,
            NotificationEvent(
                event=event,
                pipeline=self._pipeline,
                subject=self._gate.id,
                message=message,
                run_id=self._run_id,
                details=details,
            ),
        )
