"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from pipewright.config import AssemblyContext
from pipewright.pipeline.schema import DeliveryConfig


def make_context(**overrides) -> AssemblyContext:
    data = {"owner": "tester", "contact": "tester@example.edu", "stage": "dev"}
    data.update(overrides)
    return AssemblyContext(**data)


def make_delivery(**overrides) -> DeliveryConfig:
    data = {
        "service_name": "maps",
        "git_owner": "example-org",
        "git_token_path": "/all/github/token",
        "service_repository": "maps-service",
        "blueprints_repository": "maps-blueprints",
    }
    data.update(overrides)
    return DeliveryConfig(**data)


def source_action(name: str = "Checkout", output: str = "Code", **kwargs) -> dict:
    return {
        "name": name,
        "kind": "source",
        "output": output,
        "source": {
            "owner": "example-org",
            "repository": "repo",
            "credential": {"type": "secrets-manager", "path": "/token", "json_field": "oauth"},
        },
        **kwargs,
    }


def build_action(name: str, artifact: str, **kwargs) -> dict:
    return {"name": name, "input": artifact, **kwargs}


def simple_stages() -> list[dict]:
    """Source -> Build (produces Wheel) -> Deploy (consumes Wheel)."""
    return [
        {"name": "Source", "actions": [source_action()]},
        {"name": "Build", "actions": [build_action("Compile", "Code", output="Wheel")]},
        {"name": "Deploy", "actions": [build_action("Ship", "Wheel", extra_inputs=["Code"])]},
    ]


@pytest.fixture
def context() -> AssemblyContext:
    return make_context()


@pytest.fixture
def delivery() -> DeliveryConfig:
    return make_delivery()
