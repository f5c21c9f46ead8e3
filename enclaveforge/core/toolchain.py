"""Narrow interface to the external container toolchain.

All build, push, run, copy, stop and remove calls go through ``DockerCli``.
Tests substitute a scripted fake with the same ``run()`` signature.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from enclaveforge.core.errors import ToolchainError, ToolchainTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """The toolchain's own message, stderr preferred."""
        return (self.stderr.strip() or self.stdout.strip()
                or f"exit status {self.returncode}")


class DockerCli:
    """Runs ``docker`` (or any configured binary) as a blocking subprocess.

    Parameters
    ----------
    binary:
        Executable used for container commands.
    timeout:
        Optional per-command deadline in seconds.  ``None`` waits forever.
    """

    def __init__(self, binary: str = "docker", timeout: float | None = None) -> None:
        self.binary = binary
        self.timeout = timeout

    def run(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run ``<binary> *args`` and capture its output."""
        return self.run_raw([self.binary, *args], cwd=cwd)

    def run_raw(self, argv: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
        """Run *argv* as given.  Non-zero exits are returned, not raised."""
        argv = tuple(argv)
        logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd or ".")
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                cwd=cwd,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ToolchainTimeout(
                f"{argv[0]} {argv[1] if len(argv) > 1 else ''}".strip()
                + f" exceeded the {self.timeout}s deadline"
            ) from exc
        except OSError as exc:
            raise ToolchainError(f"cannot execute {argv[0]}: {exc}") from exc

        result = CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.ok:
            logger.debug("exit %d: %s", result.returncode, result.diagnostic)
        return result
