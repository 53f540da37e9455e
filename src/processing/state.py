"""Lifecycle of a single upload-to-ready cycle.

    idle -> uploading -> extracting -> ready
               |             |
               +--> failed <-+

A new cycle may start from ``ready`` or ``failed``; nothing survives a
process restart.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from src.utils.logger import get_logger

logger = get_logger(__name__)


class ProcessingState(StrEnum):
    """States shown to the user while a document is processed."""

    IDLE = "idle"
    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    READY = "ready"
    FAILED = "failed"


_TRANSITIONS: dict[ProcessingState, set[ProcessingState]] = {
    ProcessingState.IDLE: {ProcessingState.UPLOADING},
    ProcessingState.UPLOADING: {ProcessingState.EXTRACTING, ProcessingState.FAILED},
    ProcessingState.EXTRACTING: {ProcessingState.READY, ProcessingState.FAILED},
    ProcessingState.READY: set(),
    ProcessingState.FAILED: set(),
}

_RESTARTABLE = {ProcessingState.IDLE, ProcessingState.READY, ProcessingState.FAILED}


class InvalidTransitionError(Exception):
    """Raised when an event does not apply to the current state."""


@dataclass(frozen=True)
class StateSnapshot:
    """Point-in-time view of a tracker, safe to hand to listeners."""

    state: ProcessingState
    document_id: int | None = None
    message: str | None = None


class ProcessingTracker:
    """Finite state machine for one upload-to-ready cycle."""

    def __init__(self) -> None:
        self.state = ProcessingState.IDLE
        self.document_id: int | None = None
        self.message: str | None = None
        self._listeners: list[Callable[[StateSnapshot], None]] = []

    def subscribe(self, listener: Callable[[StateSnapshot], None]) -> None:
        """Call ``listener`` with a snapshot after every transition."""
        self._listeners.append(listener)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(self.state, self.document_id, self.message)

    def begin_upload(self) -> None:
        """File selected: start a fresh cycle, discarding any finished one."""
        if self.state not in _RESTARTABLE:
            raise InvalidTransitionError(
                f"Cannot start an upload while {self.state.value}"
            )
        self.state = ProcessingState.IDLE
        self.document_id = None
        self.message = None
        self._move(ProcessingState.UPLOADING)

    def upload_succeeded(self, document_id: int) -> None:
        self._move(ProcessingState.EXTRACTING, document_id=document_id)

    def extraction_succeeded(self) -> None:
        self._move(ProcessingState.READY)

    def fail(self, message: str) -> None:
        self._move(ProcessingState.FAILED, message=message)

    def _move(
        self,
        target: ProcessingState,
        document_id: int | None = None,
        message: str | None = None,
    ) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Invalid transition {self.state.value} -> {target.value}"
            )
        logger.debug("Processing state %s -> %s", self.state.value, target.value)
        self.state = target
        if document_id is not None:
            self.document_id = document_id
        if message is not None:
            self.message = message
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)
