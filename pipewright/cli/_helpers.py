"""Shared CLI helpers: console and manifest loading."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from pipewright.config import AssemblyContext, context_from_env
from pipewright.errors import ConfigurationError
from pipewright.pipeline.model import PipelineDefinition
from pipewright.pipeline.schema import PipelineManifest

console = Console()


def load_manifest_or_exit(path: Path) -> PipelineManifest:
    from pipewright.pipeline.loader import load_manifest

    try:
        return load_manifest(path)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def build_or_exit(manifest: PipelineManifest, context: AssemblyContext) -> PipelineDefinition:
    from pipewright.pipeline.loader import build_pipeline

    try:
        return build_pipeline(manifest, context)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def make_context(
    owner: str | None,
    contact: str | None,
    stage: str | None,
    contact_domain: str | None,
) -> AssemblyContext:
    return context_from_env(
        owner=owner, contact=contact, stage=stage, contact_domain=contact_domain
    )
