"""Workflow and stage models — the ordered plans the Orchestrator follows."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Workflow(str, Enum):
    """User-facing pipeline workflows."""

    BUILD = "build"
    PUBLISH = "publish"
    MEASUREMENT = "measurement"


class StageState(str, Enum):
    """Outcome of a single stage within one run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


class StageDefinition(BaseModel):
    """A pipeline stage; its position comes from the workflow plan."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str


VALIDATE = StageDefinition(stage_id="validate", display_name="Validate Configuration")
BUILD = StageDefinition(stage_id="build", display_name="Build Image")
PUSH = StageDefinition(stage_id="push", display_name="Push Image")
MEASURE = StageDefinition(stage_id="measure", display_name="Extract Measurement")


# Stages run strictly in list order; the first failure aborts the rest.
WORKFLOW_PLANS: dict[Workflow, list[StageDefinition]] = {
    Workflow.BUILD: [VALIDATE, BUILD, MEASURE],
    Workflow.PUBLISH: [VALIDATE, BUILD, PUSH, MEASURE],
    Workflow.MEASUREMENT: [VALIDATE, MEASURE],
}


def plan_for(workflow: Workflow, *, measure: bool = True) -> list[StageDefinition]:
    """Return the stage plan for *workflow*.

    ``measure=False`` drops the measurement stage, which only the ``build``
    workflow allows.
    """
    plan = list(WORKFLOW_PLANS[workflow])
    if not measure and workflow == Workflow.BUILD:
        plan = [stage for stage in plan if stage is not MEASURE]
    return plan
