"""Pydantic models for pipeline manifests and stage specifications."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Stage and action names join into "<Stage>/<Action>" ids, so neither may contain "/".
Name = Annotated[str, Field(min_length=1, pattern=r"^[^/]+$")]

# ---------------------------------------------------------------------------
# Environment bindings
# ---------------------------------------------------------------------------


class PlaintextBinding(BaseModel):
    type: Literal["plaintext"] = "plaintext"
    value: str


class VariableBinding(BaseModel):
    """Reference to a variable an upstream action exposes after it runs."""

    type: Literal["variable"] = "variable"
    action: str = Field(pattern=r"^[^/]+/[^/]+$")  # "<Stage>/<Action>"
    variable: str


class ParameterStoreBinding(BaseModel):
    type: Literal["parameter-store"] = "parameter-store"
    path: str


class SecretsManagerBinding(BaseModel):
    type: Literal["secrets-manager"] = "secrets-manager"
    path: str
    json_field: str | None = None


EnvBinding = Annotated[
    PlaintextBinding | VariableBinding | ParameterStoreBinding | SecretsManagerBinding,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Actions and stages
# ---------------------------------------------------------------------------


class SourceSettings(BaseModel):
    owner: str
    repository: str
    branch: str = "main"
    credential: SecretsManagerBinding
    trigger: Literal["webhook", "poll", "none"] = "webhook"


class ActionSpec(BaseModel):
    name: Name
    kind: Literal["source", "build", "approval"] = "build"
    run_order: int = Field(default=1, ge=1)
    input: str | None = None
    extra_inputs: list[str] = []
    output: str | None = None
    environment: dict[str, EnvBinding] = {}
    project: str | None = None
    build_image: str | None = None
    exported_variables: list[str] = []
    source: SourceSettings | None = None
    notification_channel: str | None = None
    additional_information: str = ""

    @field_validator("environment", mode="before")
    @classmethod
    def _plain_strings_are_plaintext(cls, value: object) -> object:
        if isinstance(value, dict):
            return {
                k: {"type": "plaintext", "value": v} if isinstance(v, str) else v
                for k, v in value.items()
            }
        return value

    @model_validator(mode="after")
    def _validate_kind(self) -> ActionSpec:
        if self.extra_inputs and self.input is None:
            raise ValueError(f"Action '{self.name}' declares extra_inputs without an input")
        if self.kind == "source":
            if self.source is None:
                raise ValueError(f"Source action '{self.name}' requires 'source'")
            if self.output is None:
                raise ValueError(f"Source action '{self.name}' requires an 'output' artifact")
            if self.input is not None:
                raise ValueError(f"Source action '{self.name}' cannot consume artifacts")
        elif self.kind == "approval":
            if self.input is not None or self.output is not None:
                raise ValueError(f"Approval action '{self.name}' cannot have artifacts")
            if self.environment:
                raise ValueError(f"Approval action '{self.name}' cannot bind environment")
        elif self.input is None:
            raise ValueError(f"Build action '{self.name}' requires an 'input' artifact")
        return self

    @property
    def inputs(self) -> list[str]:
        """Primary input followed by the extra inputs, in declaration order."""
        return ([self.input] if self.input else []) + list(self.extra_inputs)


class StageSpec(BaseModel):
    name: Name
    actions: list[ActionSpec] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_action_names(self) -> StageSpec:
        seen: set[str] = set()
        for action in self.actions:
            if action.name in seen:
                raise ValueError(f"Duplicate action name '{action.name}' in stage '{self.name}'")
            seen.add(action.name)
        return self


# ---------------------------------------------------------------------------
# Notification channels (discriminated union)
# ---------------------------------------------------------------------------


class WebhookChannelConfig(BaseModel):
    type: Literal["webhook"] = "webhook"
    url: str
    method: str = "POST"
    headers: dict[str, str] = {}
    timeout_seconds: int = 30
    retry_count: int = 0

    def summary(self) -> str:
        return f"webhook: {self.url}"


class FileChannelConfig(BaseModel):
    type: Literal["file"] = "file"
    path: str
    format: Literal["json", "text"] = "json"

    def summary(self) -> str:
        return f"file: {self.path} ({self.format})"


ChannelConfig = Annotated[
    WebhookChannelConfig | FileChannelConfig,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Assembler and deployment input
# ---------------------------------------------------------------------------


class DeliveryConfig(BaseModel):
    """Declarative input for the standard source -> test -> prod pipeline."""

    service_name: str
    git_owner: str
    git_token_path: str
    service_repository: str
    service_branch: str = "main"
    blueprints_repository: str
    blueprints_branch: str = "main"
    environments: list[Name] = Field(default=["test", "prod"], min_length=1)
    approval_channel: str | None = None
    pipeline_channel: str | None = None
    smoke_test_image: str = "postman/newman"
    approval_message: str = "Approve or Reject this change after testing"

    @field_validator("environments")
    @classmethod
    def _unique_environments(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("Environment names must be unique")
        return value


class DeploymentSettings(BaseModel):
    """Settings for the standalone (non-pipeline) deployment definition."""

    service_name: str
    project: str
    code_path: str | None = None
    revision: str | None = None
    default_code_path: str | None = "../app/src"
    stack_name: str | None = None
    description: str = ""


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class ManifestMetadata(BaseModel):
    name: Annotated[str, Field(pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")]
    description: str = ""


class ManifestSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    delivery: DeliveryConfig | None = None
    stages: list[StageSpec] | None = None
    channels: dict[str, ChannelConfig] = {}
    deployment: DeploymentSettings | None = None

    @model_validator(mode="after")
    def _validate_sources(self) -> ManifestSpec:
        if (self.delivery is None) == (self.stages is None):
            raise ValueError("Exactly one of 'delivery' or 'stages' must be given")

        referenced: list[str] = []
        if self.delivery is not None:
            referenced += [
                c
                for c in (self.delivery.approval_channel, self.delivery.pipeline_channel)
                if c is not None
            ]
        for stage in self.stages or []:
            referenced += [
                a.notification_channel for a in stage.actions if a.notification_channel is not None
            ]
        for channel in referenced:
            if channel not in self.channels:
                raise ValueError(f"Unknown notification channel '{channel}'")
        return self


class PipelineManifest(BaseModel):
    apiVersion: str
    kind: Literal["Pipeline"]
    metadata: ManifestMetadata
    spec: ManifestSpec
