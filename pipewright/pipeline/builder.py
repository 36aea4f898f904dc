"""Stage/action graph builder: stage specs in, validated PipelineDefinition out."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from pydantic import ValidationError

from pipewright._graph import topological_tiers
from pipewright._log import get_logger
from pipewright.errors import ConfigurationError, UnresolvedVariableError
from pipewright.pipeline.artifacts import DependencyResolver
from pipewright.pipeline.model import (
    Action,
    ApprovalGate,
    Binding,
    NotificationRule,
    ParameterReference,
    PipelineDefinition,
    Plaintext,
    SecretReference,
    Stage,
    VariableReference,
)
from pipewright.pipeline.schema import (
    ActionSpec,
    EnvBinding,
    ParameterStoreBinding,
    PlaintextBinding,
    SecretsManagerBinding,
    StageSpec,
)

logger = get_logger("pipeline.builder")


def _to_binding(binding: EnvBinding) -> Binding:
    if isinstance(binding, PlaintextBinding):
        return Plaintext(binding.value)
    if isinstance(binding, ParameterStoreBinding):
        return ParameterReference(binding.path)
    if isinstance(binding, SecretsManagerBinding):
        return SecretReference(binding.path, binding.json_field)
    return VariableReference(binding.action, binding.variable)


def _to_action(stage: str, spec: ActionSpec) -> Action:
    if spec.kind == "approval":
        return ApprovalGate(
            stage=stage,
            name=spec.name,
            run_order=spec.run_order,
            notification_channel=spec.notification_channel,
            additional_information=spec.additional_information,
        )

    configuration: dict[str, object] = {}
    if spec.source is not None:
        configuration = {
            "owner": spec.source.owner,
            "repository": spec.source.repository,
            "branch": spec.source.branch,
            "trigger": spec.source.trigger,
            "credential": _to_binding(spec.source.credential),
        }

    return Action(
        stage=stage,
        name=spec.name,
        kind=spec.kind,
        run_order=spec.run_order,
        inputs=tuple(spec.inputs),
        output=spec.output,
        environment=MappingProxyType({k: _to_binding(b) for k, b in spec.environment.items()}),
        project=spec.project,
        build_image=spec.build_image,
        exported_variables=tuple(spec.exported_variables),
        configuration=MappingProxyType(configuration),
    )


def _coerce_stages(stages: Sequence[StageSpec | Mapping]) -> list[StageSpec]:
    result: list[StageSpec] = []
    for i, raw in enumerate(stages):
        if isinstance(raw, StageSpec):
            result.append(raw)
            continue
        try:
            result.append(StageSpec.model_validate(raw))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid stage #{i + 1}:\n{e}") from e
    return result


class GraphBuilder:
    """Build an immutable :class:`PipelineDefinition` from ordered stage specs.

    Construction is pure: nothing is fetched, no identifiers are generated,
    and any structural problem raises before a definition exists.
    """

    def __init__(
        self,
        name: str,
        *,
        notifications: Sequence[NotificationRule] = (),
        tags: Mapping[str, str] | None = None,
    ) -> None:
        self._name = name
        self._notifications = tuple(notifications)
        self._tags = dict(tags or {})

    def build(self, stages: Sequence[StageSpec | Mapping]) -> PipelineDefinition:
        specs = _coerce_stages(stages)
        if not specs:
            raise ConfigurationError(f"Pipeline '{self._name}' has no stages")

        seen: set[str] = set()
        for spec in specs:
            if spec.name in seen:
                raise ConfigurationError(f"Duplicate stage name '{spec.name}'")
            seen.add(spec.name)

        resolver = DependencyResolver()
        built: list[Stage] = []

        for index, spec in enumerate(specs):
            actions = [_to_action(spec.name, a) for a in spec.actions]
            stage = Stage(name=spec.name, actions=tuple(actions))

            for barrier in stage.barriers():
                # Resolve the whole barrier before it produces anything, so
                # siblings sharing a run order never see each other's output.
                for action in barrier:
                    for name in action.inputs:
                        resolver.resolve(name, action, index)
                    for var_name, ref in action.environment.items():
                        if not isinstance(ref, VariableReference):
                            continue
                        problem = resolver.check_variable(ref, action, index)
                        if problem is not None:
                            raise UnresolvedVariableError(spec.name, action.name, var_name, problem)
                for action in barrier:
                    if action.output is not None:
                        resolver.register(action.output, action, index)
                    resolver.export(action, index)

            logger.debug(
                "Stage '%s': %d action(s) in %d barrier(s)",
                stage.name,
                len(stage.actions),
                len(stage.barriers()),
            )
            built.append(stage)

        definition = PipelineDefinition(
            name=self._name,
            stages=tuple(built),
            artifacts=MappingProxyType(resolver.artifacts()),
            notifications=self._notifications,
            tags=MappingProxyType(dict(self._tags)),
            schedule=_schedule(built),
        )
        logger.debug("Built pipeline '%s' with %d stage(s)", self._name, len(built))
        return definition


def _schedule(stages: list[Stage]) -> tuple[tuple[str, ...], ...]:
    """Flatten stages and run-order barriers into the ordering contract.

    Every action depends on every action of the barrier before it (the
    previous stage's last barrier for a stage's first barrier), plus the
    producers of whatever it consumes.
    """
    barriers = [barrier for stage in stages for barrier in stage.barriers()]
    producers = {a.output: a.id for stage in stages for a in stage.actions if a.output}

    edges: dict[str, list[str]] = {}
    previous: tuple[Action, ...] = ()
    for barrier in barriers:
        for action in barrier:
            deps = [p.id for p in previous]
            deps += [producers[name] for name in action.inputs]
            deps += [ref.action for ref in action.variable_references()]
            edges[action.id] = deps
        previous = barrier

    return tuple(tuple(t) for t in topological_tiers(edges))
