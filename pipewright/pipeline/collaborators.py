"""Interfaces of the external systems a pipeline run talks to.

Nothing here is implemented by pipewright; callers plug in their own source
provider, build executor, approval channel and parameter store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from pipewright.pipeline.approval import ApprovalDecision
from pipewright.pipeline.model import Action, ApprovalGate, SecretReference


@dataclass(frozen=True)
class SourceRequest:
    owner: str
    repository: str
    branch: str
    credential: SecretReference
    trigger: str = "webhook"

    @property
    def trigger_on_push(self) -> bool:
        return self.trigger == "webhook"


@dataclass
class ActionOutput:
    """What an action left behind: an artifact location and its variables."""

    artifact: str | None = None
    variables: dict[str, str] = field(default_factory=dict)


class SourceProvider(Protocol):
    def fetch(self, request: SourceRequest) -> ActionOutput: ...


class BuildExecutor(Protocol):
    def run(
        self,
        action: Action,
        inputs: dict[str, str],
        environment: dict[str, str],
    ) -> ActionOutput: ...


class ApprovalProvider(Protocol):
    def await_decision(self, gate: ApprovalGate) -> ApprovalDecision: ...


class ParameterStore(Protocol):
    def get_parameter(self, path: str) -> str: ...

    def get_secret(self, path: str, json_field: str | None = None) -> str: ...


class RevisionLookup(Protocol):
    def __call__(self, code_path: str) -> str: ...


@dataclass
class Collaborators:
    source: SourceProvider
    build: BuildExecutor
    approval: ApprovalProvider | None = None
    parameters: ParameterStore | None = None
