"""Read pipeline manifests from YAML into pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

_T = TypeVar("_T", bound=BaseModel)


def _describe(path: Path, data: dict) -> str:
    """``'<metadata.name>' (<path>)`` when the manifest names itself, else the path."""
    metadata = data.get("metadata")
    name = metadata.get("name") if isinstance(metadata, dict) else None
    return f"'{name}' ({path})" if isinstance(name, str) and name else str(path)


def load_yaml_model(
    path: Path,
    model_cls: type[_T],
    error_cls: type[Exception],
) -> _T:
    """Read a manifest and validate it against *model_cls*.

    Every failure is raised as *error_cls*. Validation errors name the
    manifest by ``metadata.name`` when it has one, since several manifests
    usually share a file name.
    """
    try:
        raw = path.read_text()
    except OSError as e:
        raise error_cls(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise error_cls(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise error_cls(f"Validation failed for manifest {_describe(path, data)}:\n{e}") from e
