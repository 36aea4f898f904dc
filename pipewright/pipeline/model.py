"""Immutable pipeline definition produced by the graph builder.

Everything here is plain data: no identifiers are generated, nothing is read
from the environment, and deferred values (upstream variables, parameter
store paths, secrets) are kept as references for the execution engine.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


def _frozen_map() -> Mapping:
    return MappingProxyType({})


def action_id(stage: str, action: str) -> str:
    return f"{stage}/{action}"


# ---------------------------------------------------------------------------
# Environment bindings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Plaintext:
    value: str

    def to_dict(self) -> dict:
        return {"type": "plaintext", "value": self.value}


@dataclass(frozen=True)
class VariableReference:
    """A value an upstream action exposes once it has run.

    Never evaluated during construction; the execution engine resolves it.
    """

    action: str
    variable: str

    def __str__(self) -> str:
        return f"#{{{self.action}.{self.variable}}}"

    def to_dict(self) -> dict:
        return {"type": "variable", "action": self.action, "variable": self.variable}


@dataclass(frozen=True)
class ParameterReference:
    path: str

    def to_dict(self) -> dict:
        return {"type": "parameter-store", "path": self.path}


@dataclass(frozen=True)
class SecretReference:
    path: str
    json_field: str | None = None

    def to_dict(self) -> dict:
        return {"type": "secrets-manager", "path": self.path, "json_field": self.json_field}


Binding = Plaintext | VariableReference | ParameterReference | SecretReference


# ---------------------------------------------------------------------------
# Graph nodes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Artifact:
    name: str
    producer: str

    def to_dict(self) -> dict:
        return {"name": self.name, "producer": self.producer}


@dataclass(frozen=True)
class Action:
    stage: str
    name: str
    kind: str = "build"
    run_order: int = 1
    inputs: tuple[str, ...] = ()
    output: str | None = None
    environment: Mapping[str, Binding] = field(default_factory=_frozen_map, hash=False)
    project: str | None = None
    build_image: str | None = None
    exported_variables: tuple[str, ...] = ()
    configuration: Mapping[str, object] = field(default_factory=_frozen_map, hash=False)

    @property
    def id(self) -> str:
        return action_id(self.stage, self.name)

    @property
    def primary_input(self) -> str | None:
        return self.inputs[0] if self.inputs else None

    @property
    def extra_inputs(self) -> tuple[str, ...]:
        return self.inputs[1:]

    def variable_references(self) -> list[VariableReference]:
        return [b for b in self.environment.values() if isinstance(b, VariableReference)]

    def to_dict(self) -> dict:
        data: dict = {
            "name": self.name,
            "kind": self.kind,
            "run_order": self.run_order,
            "inputs": list(self.inputs),
            "output": self.output,
            "environment": {k: b.to_dict() for k, b in self.environment.items()},
        }
        if self.project is not None:
            data["project"] = self.project
        if self.build_image is not None:
            data["build_image"] = self.build_image
        if self.exported_variables:
            data["exported_variables"] = list(self.exported_variables)
        if self.configuration:
            data["configuration"] = {
                k: v.to_dict() if hasattr(v, "to_dict") else v
                for k, v in self.configuration.items()
            }
        return data


@dataclass(frozen=True)
class ApprovalGate(Action):
    """An action that blocks its stage until a human approves or rejects."""

    kind: str = "approval"
    notification_channel: str | None = None
    additional_information: str = ""

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["notification_channel"] = self.notification_channel
        data["additional_information"] = self.additional_information
        return data


@dataclass(frozen=True)
class Stage:
    name: str
    actions: tuple[Action, ...]

    def barriers(self) -> list[tuple[Action, ...]]:
        """Group actions by ascending run order; each group runs concurrently."""
        orders = sorted({a.run_order for a in self.actions})
        return [tuple(a for a in self.actions if a.run_order == o) for o in orders]

    def action(self, name: str) -> Action:
        for a in self.actions:
            if a.name == name:
                return a
        raise KeyError(f"No action '{name}' in stage '{self.name}'")

    @property
    def approval_gates(self) -> tuple[ApprovalGate, ...]:
        return tuple(a for a in self.actions if isinstance(a, ApprovalGate))

    def to_dict(self) -> dict:
        return {"name": self.name, "actions": [a.to_dict() for a in self.actions]}


@dataclass(frozen=True)
class NotificationRule:
    channel: str
    events: tuple[str, ...]

    def to_dict(self) -> dict:
        return {"channel": self.channel, "events": list(self.events)}


@dataclass(frozen=True)
class PipelineDefinition:
    name: str
    stages: tuple[Stage, ...]
    artifacts: Mapping[str, Artifact] = field(default_factory=_frozen_map, hash=False)
    notifications: tuple[NotificationRule, ...] = ()
    tags: Mapping[str, str] = field(default_factory=_frozen_map, hash=False)
    schedule: tuple[tuple[str, ...], ...] = ()

    def stage(self, name: str) -> Stage:
        for s in self.stages:
            if s.name == name:
                return s
        raise KeyError(f"No stage '{name}'")

    def actions(self) -> Iterator[Action]:
        for s in self.stages:
            yield from s.actions

    def action(self, ref: str) -> Action:
        stage, _, name = ref.partition("/")
        return self.stage(stage).action(name)

    def approval_gates(self) -> list[ApprovalGate]:
        return [g for s in self.stages for g in s.approval_gates]

    def channels_for(self, event: str) -> list[str]:
        return [r.channel for r in self.notifications if event in r.events]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "stages": [s.to_dict() for s in self.stages],
            "artifacts": {n: a.to_dict() for n, a in self.artifacts.items()},
            "notifications": [r.to_dict() for r in self.notifications],
            "tags": dict(self.tags),
            "schedule": [list(t) for t in self.schedule],
        }
