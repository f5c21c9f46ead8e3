"""``enclaveforge build|publish|measurement`` — the measurement workflows.

Each command loads the configuration once, hands it to the Orchestrator,
prints ``MrEnclve: <value>`` on success and exits non-zero with a single
``<stage> failed: <reason>`` line on failure.
"""

from __future__ import annotations

from pathlib import Path

import typer

from enclaveforge.cli import options
from enclaveforge.core.errors import PipelineError
from enclaveforge.core.orchestrator import Orchestrator
from enclaveforge.models.reports import PipelineReport
from enclaveforge.models.stages import Workflow
from enclaveforge.monitor.renderer import ReportRenderer

MEASUREMENT_LABEL = "MrEnclve: "


def run_workflow(
    workflow: Workflow,
    *,
    env_file: Path | None,
    report_path: Path | None,
    measure: bool = True,
    **overrides,
) -> None:
    """Shared body of the workflow commands."""
    settings = options.settings_from_options(env_file=env_file, **overrides)
    orchestrator = Orchestrator(settings.to_configuration())
    renderer = ReportRenderer()

    try:
        report = orchestrator.run(workflow, measure=measure)
    except PipelineError as exc:
        if orchestrator.last_report is not None:
            renderer.print_report(orchestrator.last_report)
            _write_report(orchestrator.last_report, report_path)
        renderer.print_failure(exc.diagnostic())
        raise typer.Exit(code=exc.exit_code)

    renderer.print_report(report)
    _write_report(report, report_path)
    if report.measurement is not None:
        typer.echo(f"{MEASUREMENT_LABEL}{report.measurement.value}")


def _write_report(report: PipelineReport, report_path: Path | None) -> None:
    if report_path is None:
        return
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")


def build_cmd(
    measure: bool = typer.Option(
        True,
        "--measure/--no-measure",
        help="Run the measurement workflow after building.",
    ),
    env_file: Path = options.ENV_FILE,
    remote_image: str = options.REMOTE_IMAGE,
    local_image: str = options.LOCAL_IMAGE,
    platform: str = options.PLATFORM,
    container_name: str = options.CONTAINER_NAME,
    unique_name: bool = options.UNIQUE_NAME,
    output: Path = options.OUTPUT,
    timeout: float = options.TIMEOUT,
    log_level: str = options.LOG_LEVEL,
    report: Path = options.REPORT,
) -> None:
    """Build the image locally (no push), then extract its measurement."""
    run_workflow(
        Workflow.BUILD,
        env_file=env_file,
        report_path=report,
        measure=measure,
        remote_image=remote_image,
        local_image=local_image,
        platform=platform,
        container_name=container_name,
        unique_name=unique_name,
        output=output,
        timeout=timeout,
        log_level=log_level,
    )


def publish_cmd(
    env_file: Path = options.ENV_FILE,
    remote_image: str = options.REMOTE_IMAGE,
    local_image: str = options.LOCAL_IMAGE,
    platform: str = options.PLATFORM,
    container_name: str = options.CONTAINER_NAME,
    unique_name: bool = options.UNIQUE_NAME,
    output: Path = options.OUTPUT,
    timeout: float = options.TIMEOUT,
    log_level: str = options.LOG_LEVEL,
    report: Path = options.REPORT,
) -> None:
    """Build and push the image, then extract the measurement of the pushed tag."""
    run_workflow(
        Workflow.PUBLISH,
        env_file=env_file,
        report_path=report,
        remote_image=remote_image,
        local_image=local_image,
        platform=platform,
        container_name=container_name,
        unique_name=unique_name,
        output=output,
        timeout=timeout,
        log_level=log_level,
    )


def measurement_cmd(
    env_file: Path = options.ENV_FILE,
    remote_image: str = options.REMOTE_IMAGE,
    platform: str = options.PLATFORM,
    container_name: str = options.CONTAINER_NAME,
    unique_name: bool = options.UNIQUE_NAME,
    output: Path = options.OUTPUT,
    timeout: float = options.TIMEOUT,
    log_level: str = options.LOG_LEVEL,
    report: Path = options.REPORT,
) -> None:
    """Extract the measurement from an already-published image."""
    run_workflow(
        Workflow.MEASUREMENT,
        env_file=env_file,
        report_path=report,
        remote_image=remote_image,
        platform=platform,
        container_name=container_name,
        unique_name=unique_name,
        output=output,
        timeout=timeout,
        log_level=log_level,
    )
