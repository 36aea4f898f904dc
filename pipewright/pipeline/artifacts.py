"""Artifact and variable dependency resolution.

Each artifact name has exactly one producer. A consumer sees an artifact (or
an exported variable) only if its producer sits in an earlier stage, or in the
same stage behind a lower run-order barrier.
"""

from __future__ import annotations

from dataclasses import dataclass

from pipewright._log import get_logger
from pipewright.errors import DuplicateArtifactError, UnresolvedArtifactError
from pipewright.pipeline.model import Action, Artifact, VariableReference

logger = get_logger("pipeline.artifacts")

SOURCE_VARIABLES = (
    "AuthorDate",
    "BranchName",
    "CommitId",
    "CommitMessage",
    "CommitUrl",
    "RepositoryName",
)


@dataclass(frozen=True)
class _Position:
    stage_index: int
    run_order: int

    def precedes(self, other: _Position) -> bool:
        if self.stage_index != other.stage_index:
            return self.stage_index < other.stage_index
        return self.run_order < other.run_order


class DependencyResolver:
    """Tracks produced artifacts and exported variables while a graph is built."""

    def __init__(self) -> None:
        self._artifacts: dict[str, tuple[Artifact, _Position]] = {}
        self._exports: dict[str, tuple[frozenset[str], _Position]] = {}

    # -- artifacts ---------------------------------------------------------

    def register(self, name: str, producer: Action, stage_index: int) -> Artifact:
        """Record *producer* as the single producer of artifact *name*."""
        existing = self._artifacts.get(name)
        if existing is not None:
            raise DuplicateArtifactError(name, existing[0].producer, producer.id)
        artifact = Artifact(name=name, producer=producer.id)
        self._artifacts[name] = (artifact, _Position(stage_index, producer.run_order))
        logger.debug("Artifact '%s' produced by %s", name, producer.id)
        return artifact

    def resolve(self, name: str, consumer: Action, stage_index: int) -> Artifact:
        """Return the artifact *consumer* reads, or raise if it is not visible yet."""
        entry = self._artifacts.get(name)
        if entry is None or not entry[1].precedes(_Position(stage_index, consumer.run_order)):
            raise UnresolvedArtifactError(consumer.stage, consumer.name, name)
        return entry[0]

    def artifacts(self) -> dict[str, Artifact]:
        return {name: entry[0] for name, entry in self._artifacts.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._artifacts

    # -- variables ---------------------------------------------------------

    def export(self, producer: Action, stage_index: int) -> None:
        """Record the variables *producer* exposes after it runs."""
        names = set(producer.exported_variables)
        if producer.kind == "source":
            names.update(SOURCE_VARIABLES)
        self._exports[producer.id] = (
            frozenset(names),
            _Position(stage_index, producer.run_order),
        )

    def check_variable(
        self, ref: VariableReference, consumer: Action, stage_index: int
    ) -> str | None:
        """Return a reason *ref* cannot be bound by *consumer*, or None if it can.

        Only the reference is checked; the value is never looked up here.
        """
        entry = self._exports.get(ref.action)
        if entry is None:
            return f"unknown or later action '{ref.action}'"
        names, position = entry
        if not position.precedes(_Position(stage_index, consumer.run_order)):
            return f"action '{ref.action}' does not run before '{consumer.id}'"
        if ref.variable not in names:
            return f"action '{ref.action}' does not export variable '{ref.variable}'"
        return None
