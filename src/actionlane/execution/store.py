"""Action record store - single source of truth for action status.

ARCHITECTURE
────────────
::

    ActionStore
      ├── .register(action_id, spec)   ─ insert pending record (no-op if present)
      ├── .update(action_id, **fields) ─ validated merge, emits one RecordChange
      ├── .get(action_id)              ─ point lookup
      ├── .all()                       ─ snapshot in registration order
      └── .subscribe(listener)         ─ change feed, returns unsubscribe

    Mutations happen on the event loop thread only; listeners are called
    synchronously, in mutation order, before ``update`` returns.

Records are never deleted during a session; ``clear()`` tears the whole
store down.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from actionlane.core.logging import get_logger
from actionlane.execution.actions import ActionSpec
from actionlane.execution.models import (
    ActionRecord,
    ActionStatus,
    RecordChange,
    validate_action_transition,
)

logger = get_logger(__name__)

ChangeListener = Callable[[RecordChange], Any]

_UPDATABLE_FIELDS = frozenset({
    "spec",
    "status",
    "executed",
    "cancel",
    "result",
    "error",
    "error_type",
    "started_at",
    "finished_at",
})


class ActionStore:
    """Owned record table with an explicit change-notification channel."""

    def __init__(self) -> None:
        self._records: dict[str, ActionRecord] = {}
        self._listeners: list[ChangeListener] = []

    # ── Mutation ─────────────────────────────────────────────────────

    def register(
        self,
        action_id: str,
        spec: ActionSpec,
        *,
        cancel: Callable[[], bool] | None = None,
    ) -> ActionRecord:
        """Insert a pending record for *action_id* if absent.

        Idempotent: an existing record (pending, running or terminal) is
        returned untouched.  *cancel* is the abort capability bound to the
        new record.
        """
        existing = self._records.get(action_id)
        if existing is not None:
            return existing

        record = ActionRecord(action_id=action_id, spec=spec, cancel=cancel)
        self._records[action_id] = record
        self._emit(RecordChange(
            action_id=action_id,
            previous_status=None,
            new_status=record.status,
            record=record,
        ))
        return record

    def update(self, action_id: str, **changes: Any) -> ActionRecord | None:
        """Merge *changes* into the record for *action_id*.

        Unknown ids are logged and ignored.  A ``status`` change is
        validated against the state machine before anything is applied.

        Raises:
            InvalidTransitionError: if the status change is illegal.
            TypeError: for fields that are not part of the record.
        """
        record = self._records.get(action_id)
        if record is None:
            logger.warning("store.update_unknown_action", action_id=action_id, fields=sorted(changes))
            return None

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot update ActionRecord fields: {sorted(unknown)}")

        previous = record.status
        if "status" in changes:
            changes["status"] = ActionStatus(changes["status"])
            if changes["status"] is not previous:
                validate_action_transition(previous, changes["status"])

        for key, value in changes.items():
            setattr(record, key, value)

        self._emit(RecordChange(
            action_id=action_id,
            previous_status=previous,
            new_status=record.status,
            record=record,
            detail=record.error if record.status is ActionStatus.FAILED else None,
        ))
        return record

    def clear(self) -> None:
        """Tear down the session: drop every record and listener."""
        self._records.clear()
        self._listeners.clear()

    # ── Queries ──────────────────────────────────────────────────────

    def get(self, action_id: str) -> ActionRecord | None:
        return self._records.get(action_id)

    def all(self) -> list[ActionRecord]:
        """Snapshot of all records in registration order."""
        return list(self._records.values())

    def by_status(self, status: ActionStatus) -> list[ActionRecord]:
        return [r for r in self._records.values() if r.status is status]

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    # ── Change feed ──────────────────────────────────────────────────

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Deliver every subsequent mutation to *listener*.

        Returns a callable that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, change: RecordChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as exc:
                logger.warning(
                    "store.listener_error",
                    action_id=change.action_id,
                    new_status=change.new_status.value,
                    error=str(exc),
                )
