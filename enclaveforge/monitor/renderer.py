"""Rich terminal renderer for pipeline reports.

Color scheme
------------
- green     : PASSED
- red       : FAILED
- yellow    : RUNNING
- dim       : NOT_STARTED
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from enclaveforge.models.config import BuildConfiguration
from enclaveforge.models.reports import PipelineReport
from enclaveforge.models.stages import StageState

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
}


class ReportRenderer:
    """Renders ``PipelineReport`` and ``BuildConfiguration`` as Rich output.

    Parameters
    ----------
    console:
        Rich console to print to.  Defaults to stderr so stdout stays
        reserved for the measurement line.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def stage_table(self, report: PipelineReport) -> Table:
        table = Table(
            title=f"[bold]{report.workflow.value}[/bold]  [dim]{report.run_id}[/dim]",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        table.add_column("Stage", min_width=22)
        table.add_column("Status", width=12, justify="center")
        table.add_column("Time", width=8, justify="right")
        table.add_column("Details")

        for record in report.stages:
            duration = record.duration_seconds
            table.add_row(
                record.display_name,
                _STATE_ICONS.get(record.state, record.state.value),
                f"{duration:.1f}s" if duration is not None else "-",
                escape(record.detail),
            )
        return table

    def print_report(self, report: PipelineReport) -> None:
        border = "green" if report.succeeded else "red"
        self.console.print(
            Panel(self.stage_table(report), border_style=border, padding=(0, 1))
        )

    def print_failure(self, diagnostic: str) -> None:
        self.console.print(f"[bold red]{escape(diagnostic)}[/bold red]", highlight=False)

    def print_configuration(self, config: BuildConfiguration) -> None:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in config.model_dump(mode="json").items():
            if isinstance(value, list):
                value = " ".join(str(v) for v in value)
            shown = "[yellow](unset)[/yellow]" if value in ("", None) else escape(str(value))
            table.add_row(key, shown)
        self.console.print(Panel(table, title="[bold]Effective configuration[/bold]"))
