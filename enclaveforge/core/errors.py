"""Pipeline error taxonomy.

Every error names the stage that raised it and the process exit code the
CLI should use.  None of them is retried internally.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    stage: str = "pipeline"
    exit_code: int = 1

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def diagnostic(self) -> str:
        """Single human-readable line identifying the failing stage."""
        return f"{self.stage} failed: {self}"


class ConfigurationError(PipelineError):
    """A required setting is missing or invalid.  Raised before any external call."""

    stage = "validate"
    exit_code = 2


class BuildError(PipelineError):
    """The external build toolchain reported failure."""

    stage = "build"
    exit_code = 3


class PushError(PipelineError):
    """Pushing the image to the registry failed (authentication or network)."""

    stage = "push"
    exit_code = 4


class ContainerRuntimeError(PipelineError, RuntimeError):
    """Container start, name collision or artifact copy failed."""

    stage = "run"
    exit_code = 5


class InvalidTransitionError(ContainerRuntimeError):
    """A container lifecycle transition not allowed by VALID_TRANSITIONS."""


class ToolchainError(Exception):
    """The external toolchain could not be invoked or exceeded its deadline.

    Components wrap this into their own taxonomy error.
    """


class ToolchainTimeout(ToolchainError):
    """An external command ran past the configured deadline."""
