"""Assemble the standard delivery pipeline from a DeliveryConfig.

Stages, in order::

    Source          SourceAppCode -> AppCode, SourceInfraCode -> InfraCode
    DeployTo<Env>   Build_and_Deploy (1), SmokeTests (98), approval gate (99)
    ...             one stage per environment

The approval gate only exists when an approval channel is configured, and
never in the last environment's stage.
"""

from __future__ import annotations

from pipewright._log import get_logger
from pipewright.config import AssemblyContext
from pipewright.notifications.base import APPROVAL_EVENTS, PIPELINE_EVENTS
from pipewright.pipeline.builder import GraphBuilder
from pipewright.pipeline.model import NotificationRule, PipelineDefinition, action_id
from pipewright.pipeline.schema import (
    ActionSpec,
    DeliveryConfig,
    ParameterStoreBinding,
    SecretsManagerBinding,
    SourceSettings,
    StageSpec,
    VariableBinding,
)

logger = get_logger("pipeline.assembler")

SOURCE_STAGE = "Source"
APP_ARTIFACT = "AppCode"
INFRA_ARTIFACT = "InfraCode"
APP_SOURCE_ACTION = "SourceAppCode"
INFRA_SOURCE_ACTION = "SourceInfraCode"
DEPLOY_ACTION = "Build_and_Deploy"
SMOKE_TEST_ACTION = "SmokeTests"
APPROVAL_ACTION = "ManualApprovalOf{env}Environment"

SMOKE_TEST_RUN_ORDER = 98
APPROVAL_RUN_ORDER = 99


def stage_name(environment: str) -> str:
    return f"DeployTo{environment[:1].upper()}{environment[1:]}"


def parameter_path(service: str, environment: str) -> str:
    return f"/all/{service}/{environment}"


class PipelineAssembler:
    def __init__(self, config: DeliveryConfig, context: AssemblyContext, name: str = "") -> None:
        self._config = config
        self._context = context
        self._name = name or f"{config.service_name}-pipeline"

    def stage_specs(self) -> list[StageSpec]:
        stages = [self._source_stage()]
        envs = self._config.environments
        for i, env in enumerate(envs):
            stages.append(self._deploy_stage(env, gated=i < len(envs) - 1))
        return stages

    def notification_rules(self) -> list[NotificationRule]:
        rules: list[NotificationRule] = []
        if self._config.pipeline_channel:
            rules.append(NotificationRule(self._config.pipeline_channel, tuple(PIPELINE_EVENTS)))
        if self._config.approval_channel:
            rules.append(NotificationRule(self._config.approval_channel, tuple(APPROVAL_EVENTS)))
        return rules

    def assemble(self) -> PipelineDefinition:
        builder = GraphBuilder(
            self._name,
            notifications=self.notification_rules(),
            tags=self._context.tags(),
        )
        definition = builder.build(self.stage_specs())
        logger.info(
            "Assembled '%s': %s (approval %s)",
            definition.name,
            " -> ".join(s.name for s in definition.stages),
            "enabled" if definition.approval_gates() else "omitted",
        )
        return definition

    # -- stages ------------------------------------------------------------

    def _source_stage(self) -> StageSpec:
        cfg = self._config
        credential = SecretsManagerBinding(path=cfg.git_token_path, json_field="oauth")
        return StageSpec(
            name=SOURCE_STAGE,
            actions=[
                ActionSpec(
                    name=APP_SOURCE_ACTION,
                    kind="source",
                    output=APP_ARTIFACT,
                    source=SourceSettings(
                        owner=cfg.git_owner,
                        repository=cfg.service_repository,
                        branch=cfg.service_branch,
                        credential=credential,
                        trigger="webhook",
                    ),
                ),
                ActionSpec(
                    name=INFRA_SOURCE_ACTION,
                    kind="source",
                    output=INFRA_ARTIFACT,
                    source=SourceSettings(
                        owner=cfg.git_owner,
                        repository=cfg.blueprints_repository,
                        branch=cfg.blueprints_branch,
                        credential=credential,
                        trigger="none",
                    ),
                ),
            ],
        )

    def _deploy_stage(self, env: str, *, gated: bool) -> StageSpec:
        cfg = self._config
        version = VariableBinding(
            action=action_id(SOURCE_STAGE, APP_SOURCE_ACTION), variable="CommitId"
        )
        actions = [
            ActionSpec(
                name=DEPLOY_ACTION,
                project=f"{cfg.service_name}-{env}-deploy",
                input=APP_ARTIFACT,
                extra_inputs=[INFRA_ARTIFACT],
                run_order=1,
                environment={"VERSION": version, "STAGE": env},
            ),
            ActionSpec(
                name=SMOKE_TEST_ACTION,
                project=f"{cfg.service_name}-{env}-qa",
                input=APP_ARTIFACT,
                run_order=SMOKE_TEST_RUN_ORDER,
                build_image=cfg.smoke_test_image,
                environment={
                    "API_URL": ParameterStoreBinding(
                        path=f"{parameter_path(cfg.service_name, env)}/api-url"
                    )
                },
            ),
        ]
        if gated and cfg.approval_channel:
            actions.append(
                ActionSpec(
                    name=APPROVAL_ACTION.format(env=env[:1].upper() + env[1:]),
                    kind="approval",
                    run_order=APPROVAL_RUN_ORDER,
                    notification_channel=cfg.approval_channel,
                    additional_information=cfg.approval_message,
                )
            )
        return StageSpec(name=stage_name(env), actions=actions)
