"""Pipeline module: stage/action graph assembly with artifact threading."""

from pipewright.pipeline.approval import (
    ApprovalDecision,
    ApprovalGateController,
    ApprovalStateError,
    GateState,
    RejectionOutcome,
)
from pipewright.pipeline.assembler import PipelineAssembler
from pipewright.pipeline.builder import GraphBuilder
from pipewright.pipeline.executor import PipelineResult, RunStatus, run_pipeline
from pipewright.pipeline.loader import build_pipeline, load_manifest
from pipewright.pipeline.model import (
    Action,
    ApprovalGate,
    Artifact,
    PipelineDefinition,
    Stage,
    VariableReference,
)
from pipewright.pipeline.schema import ActionSpec, DeliveryConfig, PipelineManifest, StageSpec

__all__ = [
    "Action",
    "ActionSpec",
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalGateController",
    "ApprovalStateError",
    "Artifact",
    "DeliveryConfig",
    "GateState",
    "GraphBuilder",
    "PipelineAssembler",
    "PipelineDefinition",
    "PipelineManifest",
    "PipelineResult",
    "RejectionOutcome",
    "RunStatus",
    "Stage",
    "StageSpec",
    "VariableReference",
    "build_pipeline",
    "load_manifest",
    "run_pipeline",
]
