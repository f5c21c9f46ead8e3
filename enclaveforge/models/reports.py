"""Run report models — what a pipeline run did and produced."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from enclaveforge.models.artifacts import EnclaveMeasurement, ImageArtifact
from enclaveforge.models.stages import StageState, Workflow


class StageRecord(BaseModel):
    """One stage's outcome."""

    stage_id: str
    display_name: str
    state: StageState = StageState.NOT_STARTED
    started_at: datetime | None = None
    finished_at: datetime | None = None
    detail: str = ""

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class PipelineReport(BaseModel):
    """Summary of a single ``Orchestrator.run()`` call."""

    run_id: str
    workflow: Workflow
    stages: list[StageRecord] = []
    image: ImageArtifact | None = None
    measurement: EnclaveMeasurement | None = None
    container_name: str = ""
    error: str | None = None
    failed_stage: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def succeeded(self) -> bool:
        return self.error is None and all(
            record.state == StageState.PASSED for record in self.stages
        )
