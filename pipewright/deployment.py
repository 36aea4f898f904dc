"""Standalone (non-pipeline) deployment definition.

Whether it exists at all is decided once, up front:

* an explicit code path is used as given, with whatever revision came with it;
* without one, a configured default path is used and its revision looked up;
* with neither, there is no deployment definition and that is not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pipewright._log import get_logger
from pipewright._subprocess import SubprocessTimeout, run_subprocess_text
from pipewright.config import AssemblyContext
from pipewright.errors import CollaboratorFailure
from pipewright.pipeline.assembler import parameter_path
from pipewright.pipeline.collaborators import RevisionLookup
from pipewright.pipeline.model import Binding, ParameterReference, Plaintext
from pipewright.pipeline.schema import DeploymentSettings

logger = get_logger("deployment")


class GitRevisionLookup:
    """Resolve the checked-out commit of a local working tree."""

    def __init__(self, timeout: int = 10) -> None:
        self._timeout = timeout

    def __call__(self, code_path: str) -> str:
        cmd = ["git", "-C", code_path, "rev-parse", "HEAD"]
        try:
            stdout, stderr, returncode = run_subprocess_text(cmd, timeout=self._timeout)
        except SubprocessTimeout as e:
            raise CollaboratorFailure("git rev-parse", str(e)) from e
        except OSError as e:
            raise CollaboratorFailure("git rev-parse", str(e)) from e
        if returncode != 0:
            raise CollaboratorFailure("git rev-parse", stderr.strip() or f"exit {returncode}")
        revision = stdout.strip()
        if not revision:
            raise CollaboratorFailure("git rev-parse", f"no revision for {code_path}")
        return revision


@dataclass(frozen=True)
class CodeLocation:
    path: str
    revision: str | None = None
    derived: bool = False


class CodeLocationResolver:
    def __init__(
        self,
        default_path: str | None = None,
        lookup: RevisionLookup | None = None,
    ) -> None:
        self._default_path = default_path
        self._lookup = lookup

    def resolve(
        self,
        code_path: str | None = None,
        revision: str | None = None,
    ) -> CodeLocation | None:
        if code_path:
            return CodeLocation(path=code_path, revision=revision)
        if not self._default_path:
            logger.debug("No code path and no default; skipping deployment")
            return None
        if self._lookup is None:
            raise CollaboratorFailure(
                "revision lookup", f"needed for default path {self._default_path}"
            )
        # Any explicit revision is discarded with the fallback path.
        resolved = self._lookup(self._default_path)
        logger.debug("Resolved %s to revision %s", self._default_path, resolved)
        return CodeLocation(path=self._default_path, revision=resolved, derived=True)


@dataclass(frozen=True)
class DeploymentDefinition:
    stack_name: str
    environment: str
    code_path: str
    revision: str | None
    release: str | None
    revision_derived: bool = False
    description: str = ""
    variables: dict[str, Binding] = field(default_factory=dict, hash=False)
    tags: dict[str, str] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict:
        return {
            "stack_name": self.stack_name,
            "environment": self.environment,
            "code_path": self.code_path,
            "revision": self.revision,
            "release": self.release,
            "revision_derived": self.revision_derived,
            "description": self.description,
            "variables": {k: v.to_dict() for k, v in self.variables.items()},
            "tags": dict(self.tags),
        }


def release_id(project: str, revision: str | None) -> str | None:
    return f"{project}@{revision}" if revision else None


def build_deployment(
    context: AssemblyContext,
    settings: DeploymentSettings,
    location: CodeLocation,
) -> DeploymentDefinition:
    stage = context.stage
    release = release_id(settings.project, location.revision)
    param_root = parameter_path(settings.service_name, stage)
    variables: dict[str, Binding] = {
        "SENTRY_DSN": ParameterReference(f"{param_root}/sentry_dsn"),
        "SENTRY_ENVIRONMENT": Plaintext(stage),
    }
    if release is not None:
        variables["SENTRY_RELEASE"] = Plaintext(release)
    return DeploymentDefinition(
        stack_name=settings.stack_name or f"{settings.service_name}-{stage}",
        environment=stage,
        code_path=location.path,
        revision=location.revision,
        release=release,
        revision_derived=location.derived,
        description=settings.description,
        variables=variables,
        tags=context.tags(),
    )


def resolve_deployment(
    context: AssemblyContext,
    settings: DeploymentSettings,
    *,
    lookup: RevisionLookup | None = None,
    code_path: str | None = None,
    revision: str | None = None,
) -> DeploymentDefinition | None:
    """Return the deployment definition, or None when there is nothing to deploy.

    *code_path*/*revision* override the values in *settings*. Lookup failures
    propagate as :class:`CollaboratorFailure`.
    """
    resolver = CodeLocationResolver(settings.default_code_path, lookup)
    location = resolver.resolve(code_path or settings.code_path, revision or settings.revision)
    if location is None:
        return None
    return build_deployment(context, settings, location)
