"""Reference run engine for a PipelineDefinition.

Stages run strictly in order. Inside a stage, actions are grouped by run
order; each group runs concurrently and must finish before the next group
starts. Deferred bindings are resolved here, at run time, and never earlier.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from pipewright._log import get_logger
from pipewright.errors import CollaboratorFailure
from pipewright.notifications.base import EventType, NotificationEvent
from pipewright.pipeline.approval import ApprovalGateController, GateState, RejectionOutcome
from pipewright.pipeline.collaborators import ActionOutput, Collaborators, SourceRequest
from pipewright.pipeline.model import (
    Action,
    ApprovalGate,
    ParameterReference,
    PipelineDefinition,
    Plaintext,
    SecretReference,
    VariableReference,
)

if TYPE_CHECKING:
    from pipewright.notifications.dispatcher import NotificationDispatcher

logger = get_logger("pipeline.executor")


class RunStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class ActionResult:
    action: str
    success: bool = True
    artifact: str | None = None
    variables: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    duration_ms: int = 0
    skipped: bool = False
    skip_reason: str | None = None
    gate_state: GateState | None = None


@dataclass
class PipelineResult:
    run_id: str
    pipeline_name: str
    status: RunStatus = RunStatus.SUCCEEDED
    action_results: list[ActionResult] = field(default_factory=list)
    stages_started: list[str] = field(default_factory=list)
    rejection: RejectionOutcome | None = None
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    def result(self, action: str) -> ActionResult:
        for r in self.action_results:
            if r.action == action:
                return r
        raise KeyError(action)


@dataclass
class _RunState:
    artifacts: dict[str, str] = field(default_factory=dict)
    variables: dict[str, dict[str, str]] = field(default_factory=dict)


def _resolve_environment(
    action: Action,
    state: _RunState,
    collaborators: Collaborators,
) -> dict[str, str]:
    env: dict[str, str] = {}
    for name, binding in action.environment.items():
        if isinstance(binding, Plaintext):
            env[name] = binding.value
        elif isinstance(binding, VariableReference):
            produced = state.variables.get(binding.action, {})
            if binding.variable not in produced:
                raise CollaboratorFailure(
                    binding.action, f"did not expose variable '{binding.variable}'"
                )
            env[name] = produced[binding.variable]
        elif isinstance(binding, ParameterReference | SecretReference):
            store = collaborators.parameters
            if store is None:
                raise CollaboratorFailure("parameter store", f"not configured for '{name}'")
            try:
                if isinstance(binding, ParameterReference):
                    env[name] = store.get_parameter(binding.path)
                else:
                    env[name] = store.get_secret(binding.path, binding.json_field)
            except CollaboratorFailure:
                raise
            except Exception as e:
                raise CollaboratorFailure("parameter store", f"{binding.path}: {e}") from e
    return env


def _run_gate(
    gate: ApprovalGate,
    collaborators: Collaborators,
    definition: PipelineDefinition,
    run_id: str,
    dispatcher: NotificationDispatcher | None,
) -> tuple[ActionResult, RejectionOutcome | None]:
    result = ActionResult(action=gate.id)
    if collaborators.approval is None:
        raise CollaboratorFailure("approval provider", f"not configured for gate '{gate.id}'")
    controller = ApprovalGateController(
        gate, pipeline=definition.name, run_id=run_id, dispatcher=dispatcher
    )
    controller.request()
    controller.decide(collaborators.approval.await_decision(gate))
    result.gate_state = controller.state
    return result, controller.rejection


def _execute_action(
    action: Action,
    state: _RunState,
    collaborators: Collaborators,
    definition: PipelineDefinition,
    run_id: str,
    dispatcher: NotificationDispatcher | None,
) -> tuple[ActionResult, RejectionOutcome | None]:
    """Execute a single action. Never raises; failures land in the result."""
    start = time.monotonic()
    result = ActionResult(action=action.id)
    rejection: RejectionOutcome | None = None

    try:
        if isinstance(action, ApprovalGate):
            result, rejection = _run_gate(action, collaborators, definition, run_id, dispatcher)
        else:
            environment = _resolve_environment(action, state, collaborators)
            if action.kind == "source":
                cfg = action.configuration
                output = collaborators.source.fetch(
                    SourceRequest(
                        owner=str(cfg["owner"]),
                        repository=str(cfg["repository"]),
                        branch=str(cfg["branch"]),
                        credential=cfg["credential"],  # type: ignore[arg-type]
                        trigger=str(cfg.get("trigger", "webhook")),
                    )
                )
            else:
                inputs = {name: state.artifacts[name] for name in action.inputs}
                output = collaborators.build.run(action, inputs, environment)
            output = output or ActionOutput()
            if action.output is not None and output.artifact is None:
                raise CollaboratorFailure(action.id, f"produced no '{action.output}' artifact")
            result.artifact = output.artifact
            result.variables = dict(output.variables)
    except Exception as e:
        result.success = False
        result.error = str(e)
        logger.warning("Action %s failed: %s", action.id, e)

    result.duration_ms = int((time.monotonic() - start) * 1000)
    return result, rejection


def _notify(
    definition: PipelineDefinition,
    dispatcher: NotificationDispatcher | None,
    event: EventType,
    run_id: str,
    message: str,
) -> None:
    if dispatcher is None:
        return
    for channel in definition.channels_for(event):
        dispatcher.dispatch(
            channel,
            NotificationEvent(
                event=event,
                pipeline=definition.name,
                subject=definition.name,
                message=message,
                run_id=run_id,
            ),
        )


def run_pipeline(
    definition: PipelineDefinition,
    collaborators: Collaborators,
    *,
    dispatcher: NotificationDispatcher | None = None,
    max_parallel: int = 4,
    run_id: str | None = None,
) -> PipelineResult:
    """Execute every stage of *definition*, returning results for all actions.

    A failed action halts the run with status ``failed``. A rejected gate
    halts it with status ``rejected``. Either way the remaining actions are
    reported as skipped and completed stages are left as they are.
    """
    if run_id is None:
        from pipewright._ids import generate_run_id

        run_id = generate_run_id(definition.name)

    pipeline_result = PipelineResult(run_id=run_id, pipeline_name=definition.name)
    state = _RunState()
    start = time.monotonic()
    halt_reason: str | None = None

    for stage in definition.stages:
        if halt_reason is None:
            pipeline_result.stages_started.append(stage.name)
            logger.debug("Run %s: starting stage '%s'", run_id, stage.name)

        for barrier in stage.barriers():
            if halt_reason is not None:
                for action in barrier:
                    pipeline_result.action_results.append(
                        ActionResult(action=action.id, skipped=True, skip_reason=halt_reason)
                    )
                continue

            if len(barrier) == 1:
                action = barrier[0]
                sr, rejection = _execute_action(
                    action, state, collaborators, definition, run_id, dispatcher
                )
                outcomes = [(action, sr, rejection)]
            else:
                max_workers = min(len(barrier), max_parallel)
                with ThreadPoolExecutor(max_workers=max_workers) as executor:
                    futures = {
                        executor.submit(
                            _execute_action,
                            action,
                            state,
                            collaborators,
                            definition,
                            run_id,
                            dispatcher,
                        ): action
                        for action in barrier
                    }
                    outcomes = [(futures[f], *f.result()) for f in as_completed(futures)]

            # Record only after the whole barrier finished; siblings never
            # observe each other's outputs.
            for action, sr, rejection in outcomes:
                pipeline_result.action_results.append(sr)
                if sr.success and action.output is not None and sr.artifact is not None:
                    state.artifacts[action.output] = sr.artifact
                if sr.success:
                    state.variables[sr.action] = sr.variables
                if not sr.success:
                    pipeline_result.status = RunStatus.FAILED
                    halt_reason = f"Skipped after '{sr.action}' failed"
                elif rejection is not None and pipeline_result.status is not RunStatus.FAILED:
                    pipeline_result.status = RunStatus.REJECTED
                    pipeline_result.rejection = rejection
                    halt_reason = f"Skipped after '{sr.action}' was rejected"

    pipeline_result.duration_ms = int((time.monotonic() - start) * 1000)

    if pipeline_result.status is RunStatus.SUCCEEDED:
        _notify(definition, dispatcher, EventType.PIPELINE_SUCCEEDED, run_id, "Pipeline succeeded")
    elif pipeline_result.status is RunStatus.FAILED:
        _notify(definition, dispatcher, EventType.PIPELINE_FAILED, run_id, halt_reason or "")
    logger.info("Run %s of '%s': %s", run_id, definition.name, pipeline_result.status)
    return pipeline_result
