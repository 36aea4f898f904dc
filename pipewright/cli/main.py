"""Typer CLI for pipewright."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from pipewright.cli._helpers import build_or_exit, console, load_manifest_or_exit, make_context

app = typer.Typer(
    name="pipewright",
    help="Assemble continuous-delivery pipeline definitions.",
    no_args_is_help=True,
)

ManifestArg = Annotated[Path, typer.Argument(help="Path to pipeline manifest YAML")]
OwnerOpt = Annotated[str | None, typer.Option(help="Owner tag (default: login user)")]
ContactOpt = Annotated[str | None, typer.Option(help="Contact tag")]
StageOpt = Annotated[str | None, typer.Option(help="Deployment stage (default: dev)")]
DomainOpt = Annotated[
    str | None, typer.Option("--contact-domain", help="Derive contact as <owner>@<domain>")
]


def version_callback(value: bool) -> None:
    if value:
        from pipewright import __version__

        console.print(f"pipewright {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """pipewright: continuous-delivery pipeline assembly."""
    from pipewright._log import setup_logging

    setup_logging(verbose=verbose)


@app.command()
def validate(
    manifest_file: ManifestArg,
    owner: OwnerOpt = None,
    contact: ContactOpt = None,
    stage: StageOpt = None,
    contact_domain: DomainOpt = None,
) -> None:
    """Validate a manifest and summarize its stages."""
    manifest = load_manifest_or_exit(manifest_file)
    context = make_context(owner, contact, stage, contact_domain)
    definition = build_or_exit(manifest, context)

    table = Table(title=f"Pipeline: {definition.name}")
    table.add_column("Stage", style="cyan")
    table.add_column("Actions")
    table.add_column("Approval")
    for s in definition.stages:
        gates = ", ".join(g.name for g in s.approval_gates) or "(none)"
        table.add_row(s.name, ", ".join(a.name for a in s.actions), gates)
    console.print(table)
    console.print("[green]Valid[/green]")


@app.command()
def synth(
    manifest_file: ManifestArg,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write JSON here")] = None,
    owner: OwnerOpt = None,
    contact: ContactOpt = None,
    stage: StageOpt = None,
    contact_domain: DomainOpt = None,
) -> None:
    """Emit the assembled definition as JSON."""
    manifest = load_manifest_or_exit(manifest_file)
    context = make_context(owner, contact, stage, contact_domain)
    definition = build_or_exit(manifest, context)

    text = json.dumps(definition.to_dict(), indent=2)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n")
    console.print(f"[green]Wrote[/green] {output}")


@app.command()
def plan(
    manifest_file: ManifestArg,
    owner: OwnerOpt = None,
    contact: ContactOpt = None,
    stage: StageOpt = None,
    contact_domain: DomainOpt = None,
) -> None:
    """Show stages, run-order barriers and artifact flow."""
    manifest = load_manifest_or_exit(manifest_file)
    context = make_context(owner, contact, stage, contact_domain)
    definition = build_or_exit(manifest, context)

    table = Table(title=f"Plan: {definition.name}")
    table.add_column("Stage", style="cyan")
    table.add_column("Run order", justify="right")
    table.add_column("Action")
    table.add_column("Inputs")
    table.add_column("Output")
    table.add_column("Environment")
    for s in definition.stages:
        for barrier in s.barriers():
            for a in barrier:
                env = ", ".join(f"{k}={_describe(b)}" for k, b in a.environment.items())
                table.add_row(
                    s.name,
                    str(a.run_order),
                    a.name,
                    ", ".join(a.inputs) or "-",
                    a.output or "-",
                    env or "-",
                )
    console.print(table)


@app.command()
def release(
    manifest_file: ManifestArg,
    code_path: Annotated[str | None, typer.Option(help="Application code path")] = None,
    revision: Annotated[str | None, typer.Option(help="Revision of --code-path")] = None,
    owner: OwnerOpt = None,
    contact: ContactOpt = None,
    stage: StageOpt = None,
    contact_domain: DomainOpt = None,
) -> None:
    """Resolve the standalone deployment definition, if any."""
    from pipewright.deployment import GitRevisionLookup, resolve_deployment
    from pipewright.errors import CollaboratorFailure

    manifest = load_manifest_or_exit(manifest_file)
    settings = manifest.spec.deployment
    if settings is None:
        console.print("[dim]No deployment settings; nothing to deploy.[/dim]")
        return

    context = make_context(owner, contact, stage, contact_domain)
    try:
        deployment = resolve_deployment(
            context,
            settings,
            lookup=GitRevisionLookup(),
            code_path=code_path,
            revision=revision,
        )
    except CollaboratorFailure as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if deployment is None:
        console.print("[dim]No code location; deployment skipped.[/dim]")
        return
    typer.echo(json.dumps(deployment.to_dict(), indent=2))


def _describe(binding: object) -> str:
    from pipewright.pipeline.model import ParameterReference, Plaintext, SecretReference

    if isinstance(binding, Plaintext):
        return binding.value
    if isinstance(binding, ParameterReference):
        return f"ssm:{binding.path}"
    if isinstance(binding, SecretReference):
        return f"secret:{binding.path}"
    return str(binding)
