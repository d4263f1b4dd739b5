"""Record-store observers.

``StatusLogger`` logs each status transition; ``StatusHistory`` keeps the
transition feed in memory (CLI summaries, tests).
"""

from __future__ import annotations

from actionlane.core.logging import get_logger
from actionlane.execution.models import ActionStatus, RecordChange

logger = get_logger(__name__)


class StatusLogger:
    """Log every status transition delivered by ``ActionStore.subscribe``."""

    def __call__(self, change: RecordChange) -> None:
        if not change.is_transition:
            return
        fields = {
            "action_id": change.action_id,
            "from": change.previous_status.value if change.previous_status else None,
            "to": change.new_status.value,
        }
        if change.detail:
            fields["detail"] = change.detail
        if change.new_status is ActionStatus.FAILED:
            logger.warning("action.status_changed", **fields)
        else:
            logger.info("action.status_changed", **fields)


class StatusHistory:
    """Ordered transitions seen so far."""

    def __init__(self) -> None:
        self.changes: list[RecordChange] = []

    def __call__(self, change: RecordChange) -> None:
        if change.is_transition:
            self.changes.append(change)

    def statuses(self, action_id: str) -> list[ActionStatus]:
        """Status path of one action, starting at its registration."""
        return [c.new_status for c in self.changes if c.action_id == action_id]
