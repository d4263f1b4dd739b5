"""Action records - lifecycle state and status.

This module defines ActionStatus and ActionRecord, the canonical
contracts for tracking an action from registration to its terminal
state.  All action kinds use the same structures.

Valid transition graph::

    PENDING  → RUNNING | ABORTED
    RUNNING  → COMPLETE | ABORTED | FAILED
    COMPLETE → (terminal)
    ABORTED  → (terminal)
    FAILED   → (terminal)

``PENDING → ABORTED`` is the only edge that skips RUNNING: a cancelled
action that was never dispatched.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from actionlane.core.errors import InvalidTransitionError
from actionlane.execution.actions import ActionSpec
from actionlane.execution.cancellation import CancellationToken


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class ActionStatus(str, Enum):
    """Status of an action - the canonical state machine."""

    PENDING = "pending"  # Registered, not yet dispatched by the lane
    RUNNING = "running"  # Handler invoked
    COMPLETE = "complete"  # Handler returned normally
    ABORTED = "aborted"  # Cancelled (before or during execution)
    FAILED = "failed"  # Handler raised

    @property
    def is_terminal(self) -> bool:
        return not ACTION_VALID_TRANSITIONS[self]


ACTION_VALID_TRANSITIONS: dict[ActionStatus, frozenset[ActionStatus]] = {
    ActionStatus.PENDING: frozenset({
        ActionStatus.RUNNING,
        ActionStatus.ABORTED,
    }),
    ActionStatus.RUNNING: frozenset({
        ActionStatus.COMPLETE,
        ActionStatus.ABORTED,
        ActionStatus.FAILED,
    }),
    ActionStatus.COMPLETE: frozenset(),  # terminal
    ActionStatus.ABORTED: frozenset(),  # terminal
    ActionStatus.FAILED: frozenset(),  # terminal
}

TERMINAL_STATUSES = frozenset(s for s, targets in ACTION_VALID_TRANSITIONS.items() if not targets)


def validate_action_transition(current: ActionStatus, target: ActionStatus) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_action_transition(ActionStatus.RUNNING, ActionStatus.COMPLETE)
        >>> validate_action_transition(ActionStatus.COMPLETE, ActionStatus.RUNNING)
        InvalidTransitionError: Invalid ActionStatus transition: complete → running
    """
    allowed = ACTION_VALID_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidTransitionError(current.value, target.value, "ActionStatus")


@dataclass
class ActionRecord:
    """Execution state of one declared action.

    Owned by the :class:`~actionlane.execution.store.ActionStore`; mutated
    only through ``ActionStore.update``.
    """

    action_id: str
    """Opaque, process-unique identifier assigned by the upstream parser"""

    spec: ActionSpec
    """What to execute (replaced while pending, frozen once running)"""

    status: ActionStatus = ActionStatus.PENDING

    executed: bool = False
    """Flips to True together with PENDING → RUNNING; guards double dispatch"""

    token: CancellationToken = field(default_factory=CancellationToken, repr=False, compare=False)
    """Per-action cancellation signal handed to the handler"""

    cancel: Callable[[], bool] | None = field(default=None, repr=False, compare=False)
    """Capability bound by the sequencer: aborts this action"""

    # === OUTCOME ===
    result: Any = None
    """Handler outcome (exit code, written paths, ...)"""

    error: str | None = None
    error_type: str | None = None

    # === TIMESTAMPS ===
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "action_id": self.action_id,
            "kind": self.spec.kind.value,
            "location": self.spec.location,
            "status": self.status.value,
            "executed": self.executed,
            "result": self.result,
            "error": self.error,
            "error_type": self.error_type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class RecordChange:
    """One mutation of the record store, as delivered to subscribers."""

    action_id: str
    previous_status: ActionStatus | None
    """None for the registration that created the record"""

    new_status: ActionStatus
    record: ActionRecord
    detail: str | None = None
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_transition(self) -> bool:
        return self.previous_status is not self.new_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_id": self.action_id,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "new_status": self.new_status.value,
            "detail": self.detail,
            "timestamp": self.timestamp.isoformat(),
        }


__all__ = [
    "ActionStatus",
    "ACTION_VALID_TRANSITIONS",
    "TERMINAL_STATUSES",
    "validate_action_transition",
    "ActionRecord",
    "RecordChange",
    "utcnow",
]
