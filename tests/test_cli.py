"""Tests for the pipewright CLI."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from pipewright.cli.main import app

runner = CliRunner()

MANIFEST = textwrap.dedent("""\
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
      deployment:
        service_name: maps
        project: project
""")

CONTEXT = ["--owner", "tester", "--contact", "tester@example.edu"]


def _write(tmp_path: Path, text: str = MANIFEST) -> Path:
    f = tmp_path / "pipeline.yaml"
    f.write_text(text)
    return f


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "pipewright" in result.output


class TestValidate:
    def test_valid(self, tmp_path):
        result = runner.invoke(app, ["validate", str(_write(tmp_path)), *CONTEXT])
        assert result.exit_code == 0, result.output
        assert "Valid" in result.output
        assert "maps-pipeline" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml"), *CONTEXT])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unresolved_artifact(self, tmp_path):
        text = textwrap.dedent("""\
            apiVersion: pipewright/v1
            kind: Pipeline
            metadata:
              name: broken
            spec:
              stages:
                - name: Build
                  actions:
                    - name: Compile
                      input: Code
        """)
        result = runner.invoke(app, ["validate", str(_write(tmp_path, text)), *CONTEXT])
        assert result.exit_code == 1
        assert "Code" in result.output


class TestSynth:
    def test_stdout_json(self, tmp_path):
        result = runner.invoke(app, ["synth", str(_write(tmp_path)), *CONTEXT])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert [s["name"] for s in data["stages"]] == ["Source", "DeployToTest", "DeployToProd"]
        assert data["tags"] == {"Owner": "tester", "Contact": "tester@example.edu"}

    def test_output_file(self, tmp_path):
        out = tmp_path / "build" / "pipeline.json"
        result = runner.invoke(app, ["synth", str(_write(tmp_path)), "-o", str(out), *CONTEXT])
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text())["name"] == "maps-pipeline"

    def test_synth_is_repeatable(self, tmp_path):
        path = str(_write(tmp_path))
        first = runner.invoke(app, ["synth", path, *CONTEXT])
        second = runner.invoke(app, ["synth", path, *CONTEXT])
        assert first.output == second.output


class TestPlan:
    def test_plan(self, tmp_path):
        result = runner.invoke(app, ["plan", str(_write(tmp_path)), *CONTEXT])
        assert result.exit_code == 0, result.output
        assert "Plan: maps-pipeline" in result.output


class TestRelease:
    def test_fallback_lookup(self, tmp_path):
        with patch("pipewright.deployment.GitRevisionLookup") as lookup_cls:
            lookup_cls.return_value.return_value = "abc123"
            result = runner.invoke(
                app, ["release", str(_write(tmp_path)), "--stage", "test", *CONTEXT]
            )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["release"] == "project@abc123"
        assert data["stack_name"] == "maps-test"
        assert data["revision_derived"] is True

    def test_explicit_code_path(self, tmp_path):
        result = runner.invoke(
            app,
            [
                "release",
                str(_write(tmp_path)),
                "--code-path",
                "./dist",
                "--revision",
                "r1",
                *CONTEXT,
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["release"] == "project@r1"
        assert data["revision_derived"] is False

    def test_lookup_failure(self, tmp_path):
        from pipewright.errors import CollaboratorFailure

        with patch("pipewright.deployment.GitRevisionLookup") as lookup_cls:
            lookup_cls.return_value.side_effect = CollaboratorFailure(
                "git rev-parse", "not a git repository"
            )
            result = runner.invoke(app, ["release", str(_write(tmp_path)), *CONTEXT])
        assert result.exit_code == 1
        assert "git rev-parse failed" in result.output

    def test_no_deployment_settings(self, tmp_path):
        text = MANIFEST.split("  deployment:")[0]
        result = runner.invoke(app, ["release", str(_write(tmp_path, text)), *CONTEXT])
        assert result.exit_code == 0
        assert "nothing to deploy" in result.output
