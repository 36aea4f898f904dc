"""Load pipeline manifests and turn them into definitions."""

from __future__ import annotations

from pathlib import Path

from pipewright._yaml import load_yaml_model
from pipewright.config import AssemblyContext
from pipewright.errors import ManifestLoadError
from pipewright.notifications.base import APPROVAL_EVENTS
from pipewright.pipeline.assembler import PipelineAssembler
from pipewright.pipeline.builder import GraphBuilder
from pipewright.pipeline.model import NotificationRule, PipelineDefinition
from pipewright.pipeline.schema import PipelineManifest


def load_manifest(path: Path) -> PipelineManifest:
    """Read a YAML file and validate it as a PipelineManifest."""
    return load_yaml_model(path, PipelineManifest, ManifestLoadError)


def build_pipeline(manifest: PipelineManifest, context: AssemblyContext) -> PipelineDefinition:
    """Build the definition a manifest describes.

    ``spec.delivery`` goes through the assembler; ``spec.stages`` is handed to
    the graph builder as-is, with approval events routed to whichever channels
    its gates name.
    """
    spec = manifest.spec
    if spec.delivery is not None:
        return PipelineAssembler(spec.delivery, context, name=manifest.metadata.name).assemble()

    channels: list[str] = []
    for stage in spec.stages or []:
        for action in stage.actions:
            channel = action.notification_channel
            if channel is not None and channel not in channels:
                channels.append(channel)
    rules = [NotificationRule(c, tuple(APPROVAL_EVENTS)) for c in channels]
    builder = GraphBuilder(manifest.metadata.name, notifications=rules, tags=context.tags())
    return builder.build(spec.stages or [])
