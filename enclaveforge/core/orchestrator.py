"""Pipeline orchestrator — validates, then runs a workflow's stages in order.

The Orchestrator wires together the ImageBuilder, Publisher, ContainerRunner
and ArtifactExtractor around a single immutable ``BuildConfiguration``.
Stages run strictly in sequence; the first failure aborts the remaining
stages and propagates to the caller.  Container cleanup happens inside the
measure stage on every exit path.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import docker

from enclaveforge.core import cleaner
from enclaveforge.core.container_runner import ContainerRunner, unique_name
from enclaveforge.core.docker_client import connect
from enclaveforge.core.errors import (
    ConfigurationError,
    ContainerRuntimeError,
    PipelineError,
    PushError,
    ToolchainError,
)
from enclaveforge.core.extractor import ArtifactExtractor
from enclaveforge.core.hasher import configuration_fingerprint
from enclaveforge.core.image_builder import ImageBuilder
from enclaveforge.core.publisher import Publisher
from enclaveforge.core.toolchain import DockerCli
from enclaveforge.models.artifacts import EnclaveMeasurement
from enclaveforge.models.config import BuildConfiguration
from enclaveforge.models.reports import PipelineReport, StageRecord
from enclaveforge.models.stages import StageState, Workflow, plan_for

logger = logging.getLogger(__name__)


class Orchestrator:
    """Central pipeline coordinator.

    Parameters
    ----------
    config:
        The run's configuration.  Never mutated.
    cli:
        Toolchain interface used for image builds and cache cleaning.
    client:
        Docker Engine client used for pushes and containers.  Connected on
        first use when omitted, so a build that never pushes or measures
        does not need the daemon's API.
    builder, publisher, runner, extractor:
        Component overrides; defaults are built on *cli* and *client*.
    run_id:
        Identifier recorded in the report.  Generated when omitted.
    """

    def __init__(
        self,
        config: BuildConfiguration,
        *,
        cli: DockerCli | None = None,
        client: docker.DockerClient | None = None,
        builder: ImageBuilder | None = None,
        publisher: Publisher | None = None,
        runner: ContainerRunner | None = None,
        extractor: ArtifactExtractor | None = None,
        run_id: str | None = None,
    ) -> None:
        self.config = config
        self.cli = cli or DockerCli(
            config.docker_binary, timeout=config.command_timeout_seconds
        )
        self.builder = builder or ImageBuilder(self.cli)
        self._client = client
        self._publisher = publisher
        self._runner = runner
        self._extractor = extractor

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"ef-{ts}-{uuid.uuid4().hex[:6]}"
        self.last_report: PipelineReport | None = None

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = connect(self.config.command_timeout_seconds)
        return self._client

    @property
    def publisher(self) -> Publisher:
        if self._publisher is None:
            try:
                self._publisher = Publisher(self.client)
            except ToolchainError as exc:
                raise PushError(str(exc)) from exc
        return self._publisher

    @property
    def runner(self) -> ContainerRunner:
        if self._runner is None:
            try:
                client = self.client
            except ToolchainError as exc:
                raise ContainerRuntimeError(str(exc)) from exc
            self._runner = ContainerRunner(
                client,
                poll_interval=self.config.poll_interval_seconds,
                deadline=self.config.command_timeout_seconds,
            )
        return self._runner

    @property
    def extractor(self) -> ArtifactExtractor:
        if self._extractor is None:
            try:
                self._extractor = ArtifactExtractor(self.client)
            except ToolchainError as exc:
                raise ContainerRuntimeError(str(exc), stage="extract") from exc
        return self._extractor

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Reject configurations that cannot drive a run.  No external calls."""
        if not self.config.remote_image_name.strip():
            raise ConfigurationError(
                "remote image name is not set "
                "(ENCLAVEFORGE_REMOTE_IMAGE_NAME or DOCKERHUB_IMAGE_NAME)"
            )
        if not self.config.target_platform.strip():
            raise ConfigurationError("target platform is empty")
        if not self.config.container_name.strip():
            raise ConfigurationError("container name is empty")

    def run(self, workflow: Workflow | str, *, measure: bool = True) -> PipelineReport:
        """Run *workflow* and return its report.

        Raises the first ``PipelineError`` encountered; the partial report
        stays available as ``last_report``.
        """
        workflow = Workflow(workflow)
        container_name = self.config.container_name
        if self.config.unique_container_name:
            container_name = unique_name(container_name)

        report = PipelineReport(
            run_id=self.run_id,
            workflow=workflow,
            container_name=container_name,
            stages=[
                StageRecord(stage_id=stage.stage_id, display_name=stage.display_name)
                for stage in plan_for(workflow, measure=measure)
            ],
        )
        self.last_report = report

        logger.info(
            "Run %s: %s [config %s]",
            self.run_id,
            workflow.value,
            configuration_fingerprint(self.config.model_dump(mode="json")),
        )

        handlers: dict[str, Callable[[PipelineReport], str]] = {
            "validate": self._validate_stage,
            "build": self._build_stage,
            "push": self._push_stage,
            "measure": self._measure_stage,
        }

        for record in report.stages:
            record.state = StageState.RUNNING
            record.started_at = datetime.now(timezone.utc)
            logger.info("%s [%s] started", record.display_name, record.stage_id)
            try:
                record.detail = handlers[record.stage_id](report)
            except PipelineError as exc:
                record.state = StageState.FAILED
                record.finished_at = datetime.now(timezone.utc)
                record.detail = str(exc)
                report.error = exc.diagnostic()
                report.failed_stage = exc.stage
                logger.error(
                    "%s [%s] failed: %s", record.display_name, record.stage_id, exc
                )
                raise
            record.state = StageState.PASSED
            record.finished_at = datetime.now(timezone.utc)
            logger.info("%s [%s] passed", record.display_name, record.stage_id)

        return report

    def measure(self, container_name: str | None = None) -> EnclaveMeasurement:
        """Start a measurement container, copy the measurement out, tear it down."""
        name = container_name or self.config.container_name
        with self.runner.session(
            self.config.remote_image_reference(), name, self.config.target_platform
        ) as instance:
            return self.extractor.extract(
                instance, self.config.measurement_path, self.config.output_path
            )

    def clean(self) -> None:
        """Discard local build caches via the configured toolchain command."""
        cleaner.clean(self.cli, self.config)

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    def _validate_stage(self, report: PipelineReport) -> str:
        self.validate()
        return f"remote image {self.config.remote_image_reference()}"

    def _build_stage(self, report: PipelineReport) -> str:
        report.image = self.builder.build(
            self.config, for_push=report.workflow == Workflow.PUBLISH
        )
        return f"built {report.image.reference}"

    def _push_stage(self, report: PipelineReport) -> str:
        if report.image is None:
            raise PipelineError("no image to push", stage="push")
        self.publisher.push(report.image)
        return f"pushed {report.image.reference}"

    def _measure_stage(self, report: PipelineReport) -> str:
        report.measurement = self.measure(report.container_name)
        return f"{report.measurement.digest} -> {report.measurement.local_path}"
