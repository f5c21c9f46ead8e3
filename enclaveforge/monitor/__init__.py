"""Terminal rendering of pipeline reports."""

from enclaveforge.monitor.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
