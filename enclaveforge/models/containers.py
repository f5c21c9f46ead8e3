"""Container instance lifecycle models — deterministic transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ContainerState(str, Enum):
    """Lifecycle of one ephemeral measurement container."""

    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    REMOVED = "removed"
    ERROR = "error"


# Enforced by ContainerRunner. REMOVED is terminal; ERROR only leads to cleanup.
VALID_TRANSITIONS: dict[ContainerState, set[ContainerState]] = {
    ContainerState.CREATED: {
        ContainerState.RUNNING,
        ContainerState.ERROR,
        ContainerState.STOPPED,
    },
    ContainerState.RUNNING: {ContainerState.STOPPED, ContainerState.ERROR},
    ContainerState.STOPPED: {ContainerState.REMOVED},
    ContainerState.ERROR: {ContainerState.STOPPED, ContainerState.REMOVED},
    ContainerState.REMOVED: set(),
}


class ContainerInstance(BaseModel):
    """One container created from an image reference.

    ``lifecycle_state`` is owned by the ContainerRunner that created the
    instance; other components only read it.
    """

    name: str
    image_reference: str
    platform: str
    container_id: str = ""
    lifecycle_state: ContainerState = ContainerState.CREATED
    stop_attempted: bool = False
    remove_attempted: bool = False

    @property
    def is_removed(self) -> bool:
        return self.lifecycle_state == ContainerState.REMOVED
