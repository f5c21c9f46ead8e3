"""Ephemeral container lifecycle — start, await running, stop, remove.

Enforces:
- Valid lifecycle transitions only (VALID_TRANSITIONS table)
- One live instance per name; the runtime rejects duplicates
- ``stop`` and ``remove`` idempotent on already-stopped/removed instances
- ``session()`` attempts ``stop`` and ``remove`` exactly once each on
  every exit path, including failures inside the ``with`` block

No signal handlers are installed: a process killed mid-run can leave the
instance behind under its name.
"""

from __future__ import annotations

import contextlib
import logging
import time
import uuid
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

import docker
from docker.errors import APIError, DockerException, NotFound

from enclaveforge.core.docker_client import explain
from enclaveforge.core.errors import (
    ContainerRuntimeError,
    InvalidTransitionError,
)
from enclaveforge.models.containers import (
    VALID_TRANSITIONS,
    ContainerInstance,
    ContainerState,
)

if TYPE_CHECKING:
    from docker.models.containers import Container

logger = logging.getLogger(__name__)

_NAME_CONFLICT = 409

# Runtime statuses that prove the process was started.
_STARTED_STATUSES = frozenset({"running", "exited", "paused"})
_PENDING_STATUSES = frozenset({"created", "restarting", ""})


def unique_name(base: str) -> str:
    """Per-run container name, so parallel runs do not collide."""
    return f"{base}-{uuid.uuid4().hex[:8]}"


class ContainerRunner:
    """Owns one container instance at a time on behalf of a pipeline run.

    Parameters
    ----------
    client:
        Docker client used for every runtime call.
    poll_interval:
        Seconds between status checks while awaiting Running.
    deadline:
        Optional bound, in seconds, on awaiting Running.  ``None`` waits
        until the runtime reports a decisive status.
    """

    def __init__(
        self,
        client: docker.DockerClient,
        *,
        poll_interval: float = 0.5,
        deadline: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._deadline = deadline
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def start(self, image_reference: str, name: str, platform: str) -> ContainerInstance:
        """Start a detached instance and wait until the runtime reports it started.

        A name collision raises ``ContainerRuntimeError`` and leaves the
        existing instance alone.  Any other failure moves the new instance to
        ERROR, forces one ``stop`` and one ``remove``, then raises.
        """
        instance = ContainerInstance(
            name=name, image_reference=image_reference, platform=platform
        )
        logger.info("Starting %s from %s (%s)", name, image_reference, platform)

        try:
            container = self._client.containers.run(
                image_reference, detach=True, name=name, platform=platform
            )
        except APIError as exc:
            if exc.status_code == _NAME_CONFLICT:
                raise ContainerRuntimeError(
                    f"name in use: {name} ({explain(exc)})"
                ) from exc
            self._fail_and_clean(instance)
            raise ContainerRuntimeError(
                f"failed to start {name}: {explain(exc)}"
            ) from exc
        except (DockerException, OSError) as exc:
            self._fail_and_clean(instance)
            raise ContainerRuntimeError(f"failed to start {name}: {exc}") from exc

        instance.container_id = container.id

        try:
            self._await_started(instance)
        except ContainerRuntimeError:
            self._fail_and_clean(instance)
            raise

        self._transition(instance, ContainerState.RUNNING)
        return instance

    def stop(self, instance: ContainerInstance) -> None:
        """Stop *instance*.  A no-op once it is stopped or removed."""
        if instance.lifecycle_state in (ContainerState.STOPPED, ContainerState.REMOVED):
            return

        instance.stop_attempted = True
        try:
            self._lookup(instance).stop()
        except NotFound:
            logger.debug("%s already gone", instance.name)
        except (DockerException, OSError) as exc:
            self._mark_error(instance)
            raise ContainerRuntimeError(
                f"failed to stop {instance.name}: {explain(exc)}"
            ) from exc
        self._transition(instance, ContainerState.STOPPED)

    def remove(self, instance: ContainerInstance) -> None:
        """Remove *instance*.  A no-op once it is removed."""
        if instance.lifecycle_state == ContainerState.REMOVED:
            return
        if ContainerState.REMOVED not in VALID_TRANSITIONS[instance.lifecycle_state]:
            raise InvalidTransitionError(
                f"Cannot remove {instance.name} while {instance.lifecycle_state.value}; "
                "stop it first"
            )

        force = instance.lifecycle_state == ContainerState.ERROR
        instance.remove_attempted = True
        try:
            self._lookup(instance).remove(force=force)
        except NotFound:
            logger.debug("%s already gone", instance.name)
        except (DockerException, OSError) as exc:
            self._mark_error(instance)
            raise ContainerRuntimeError(
                f"failed to remove {instance.name}: {explain(exc)}"
            ) from exc
        self._transition(instance, ContainerState.REMOVED)

    def cleanup(self, instance: ContainerInstance) -> list[str]:
        """Attempt ``stop`` then ``remove``, each at most once per instance.

        Never raises; returns the failure messages so the caller decides
        whether they matter.
        """
        problems: list[str] = []
        if not instance.stop_attempted:
            try:
                self.stop(instance)
            except ContainerRuntimeError as exc:
                logger.warning("Cleanup: %s", exc)
                problems.append(str(exc))
        if not instance.remove_attempted:
            try:
                self.remove(instance)
            except ContainerRuntimeError as exc:
                logger.warning("Cleanup: %s", exc)
                problems.append(str(exc))
        return problems

    @contextlib.contextmanager
    def session(
        self, image_reference: str, name: str, platform: str
    ) -> Iterator[ContainerInstance]:
        """Scoped instance: started on entry, stopped and removed on exit.

        If the block raises, cleanup problems are logged and the original
        exception propagates.  If the block succeeds but cleanup fails,
        ``ContainerRuntimeError`` is raised.
        """
        instance = self.start(image_reference, name, platform)
        try:
            yield instance
        except BaseException:
            self.cleanup(instance)
            raise
        problems = self.cleanup(instance)
        if problems:
            raise ContainerRuntimeError("cleanup failed: " + "; ".join(problems))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lookup(self, instance: ContainerInstance) -> Container:
        return self._client.containers.get(instance.name)

    def _await_started(self, instance: ContainerInstance) -> None:
        started_at = self._clock()
        while True:
            try:
                container = self._lookup(instance)
                container.reload()
            except (DockerException, OSError) as exc:
                raise ContainerRuntimeError(
                    f"cannot inspect {instance.name}: {explain(exc)}"
                ) from exc
            status = (container.status or "").lower()
            if status in _STARTED_STATUSES:
                logger.debug("%s reported %s", instance.name, status)
                return
            if status not in _PENDING_STATUSES:
                raise ContainerRuntimeError(
                    f"{instance.name} entered unexpected status {status!r}"
                )
            if self._deadline is not None and self._clock() - started_at >= self._deadline:
                raise ContainerRuntimeError(
                    f"{instance.name} did not start within {self._deadline}s"
                )
            self._sleep(self._poll_interval)

    def _fail_and_clean(self, instance: ContainerInstance) -> None:
        self._mark_error(instance)
        self.cleanup(instance)

    def _mark_error(self, instance: ContainerInstance) -> None:
        if ContainerState.ERROR in VALID_TRANSITIONS[instance.lifecycle_state]:
            self._transition(instance, ContainerState.ERROR)

    @staticmethod
    def _transition(instance: ContainerInstance, target: ContainerState) -> None:
        current = instance.lifecycle_state
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot transition {instance.name} from {current.value} "
                f"to {target.value}. "
                f"Allowed: {sorted(s.value for s in VALID_TRANSITIONS[current])}"
            )
        instance.lifecycle_state = target
        logger.debug("%s: %s -> %s", instance.name, current.value, target.value)
