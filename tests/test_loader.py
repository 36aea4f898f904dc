"""Tests for manifest loading and building."""

import textwrap
from pathlib import Path

import pytest

from pipewright.errors import ConfigurationError, ManifestLoadError
from pipewright.notifications.base import EventType
from pipewright.pipeline.loader import build_pipeline, load_manifest
from tests.conftest import make_context

EXAMPLES = Path(__file__).resolve().parent.parent / "examples" / "pipelines"

DELIVERY_YAML = textwrap.dedent("""\
    apiVersion: pipewright/v1
    kind: Pipeline
    metadata:
      name: maps-pipeline
    spec:
      delivery:
        service_name: maps
        git_owner: example-org
        git_token_path: /all/github/token
        service_repository: maps-service
        blueprints_repository: maps-blueprints
        approval_channel: approvals
      channels:
        approvals:
          type: file
          path: ./approvals.jsonl
""")


def _write(tmp_path: Path, text: str) -> Path:
    f = tmp_path / "pipeline.yaml"
    f.write_text(text)
    return f


class TestLoadManifest:
    def test_valid(self, tmp_path):
        manifest = load_manifest(_write(tmp_path, DELIVERY_YAML))
        assert manifest.metadata.name == "maps-pipeline"
        assert manifest.spec.delivery.approval_channel == "approvals"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestLoadError, match="Cannot read"):
            load_manifest(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ManifestLoadError, match="Invalid YAML"):
            load_manifest(_write(tmp_path, "spec: [unclosed"))

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(ManifestLoadError, match="Expected a YAML mapping"):
            load_manifest(_write(tmp_path, "- a\n- b\n"))

    def test_validation_error(self, tmp_path):
        with pytest.raises(ManifestLoadError, match="Validation failed"):
            load_manifest(_write(tmp_path, DELIVERY_YAML.replace("kind: Pipeline", "kind: Job")))

    def test_validation_error_names_manifest(self, tmp_path):
        path = _write(tmp_path, DELIVERY_YAML.replace("kind: Pipeline", "kind: Job"))
        with pytest.raises(ManifestLoadError, match=r"manifest 'maps-pipeline' \("):
            load_manifest(path)

    def test_load_error_is_configuration_error(self):
        assert issubclass(ManifestLoadError, ConfigurationError)


class TestBuildPipeline:
    def test_delivery_manifest(self, tmp_path):
        manifest = load_manifest(_write(tmp_path, DELIVERY_YAML))
        d = build_pipeline(manifest, make_context())
        assert d.name == "maps-pipeline"
        assert len(d.approval_gates()) == 1

    def test_stage_manifest_routes_gate_channel(self):
        manifest = load_manifest(EXAMPLES / "stages.yaml")
        d = build_pipeline(manifest, make_context())
        assert [s.name for s in d.stages] == ["Source", "Build", "Publish"]
        assert d.channels_for(EventType.APPROVAL_REQUESTED) == ["releases"]
        assert d.tags["Owner"] == "tester"

    def test_delivery_example(self):
        manifest = load_manifest(EXAMPLES / "delivery.yaml")
        d = build_pipeline(manifest, make_context())
        assert d.channels_for(EventType.PIPELINE_SUCCEEDED) == ["pipeline-events"]
        assert manifest.spec.deployment.default_code_path == "../app/src"
