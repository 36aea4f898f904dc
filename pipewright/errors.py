"""Error taxonomy for pipeline assembly.

Construction-time problems are :class:`ConfigurationError` subclasses and are
always raised before any definition is returned. A rejected approval is not an
error at all; see :class:`pipewright.pipeline.approval.RejectionOutcome`.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """The pipeline graph or its input is structurally invalid."""


class UnresolvedArtifactError(ConfigurationError):
    """An action consumes an artifact no earlier action produces."""

    def __init__(self, stage: str, action: str, artifact: str) -> None:
        self.stage = stage
        self.action = action
        self.artifact = artifact
        super().__init__(
            f"Action '{action}' in stage '{stage}' consumes artifact '{artifact}' "
            f"which is not produced by any earlier action"
        )


class DuplicateArtifactError(ConfigurationError):
    """Two actions declare the same output artifact."""

    def __init__(self, artifact: str, existing: str, duplicate: str) -> None:
        self.artifact = artifact
        self.existing = existing
        self.duplicate = duplicate
        super().__init__(
            f"Artifact '{artifact}' is already produced by '{existing}'; "
            f"'{duplicate}' cannot produce it again"
        )


class UnresolvedVariableError(ConfigurationError):
    """An environment binding references a variable no earlier action exports."""

    def __init__(self, stage: str, action: str, binding: str, detail: str) -> None:
        self.stage = stage
        self.action = action
        self.binding = binding
        super().__init__(
            f"Environment variable '{binding}' of action '{action}' in stage '{stage}': {detail}"
        )


class ManifestLoadError(ConfigurationError):
    """Raised when a pipeline manifest cannot be loaded or validated."""


class CollaboratorFailure(Exception):
    """An external collaborator (lookup, store, provider) failed.

    Propagated to the caller unchanged; no retry is attempted here.
    """

    def __init__(self, collaborator: str, detail: str) -> None:
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} failed: {detail}")
