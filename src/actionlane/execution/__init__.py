"""Action execution: records, the sequencer lane, and type handlers.

Typical use::

    from actionlane.execution import ActionSequencer, FileAction
    from actionlane.sandbox import LocalSandbox

    async with ActionSequencer(LocalSandbox("./app")) as lane:
        lane.register("1", FileAction(path="index.js", content="..."))
        lane.finalize("1")
"""

from actionlane.execution.actions import (
    ActionKind,
    ActionSpec,
    ChainTarget,
    ContractAction,
    ContractLanguage,
    FileAction,
    ShellAction,
    describe_action,
)
from actionlane.execution.cancellation import CancellationToken
from actionlane.execution.handlers import (
    ActionHandler,
    ActionHandlers,
    ContractActionHandler,
    FileActionHandler,
    ShellActionHandler,
)
from actionlane.execution.models import (
    ACTION_VALID_TRANSITIONS,
    TERMINAL_STATUSES,
    ActionRecord,
    ActionStatus,
    RecordChange,
    validate_action_transition,
)
from actionlane.execution.observers import StatusHistory, StatusLogger
from actionlane.execution.plan import Plan
from actionlane.execution.sequencer import ActionSequencer
from actionlane.execution.store import ActionStore
from actionlane.execution.stream import ActionEvent, ActionStreamConsumer

__all__ = [
    # Specs
    "ActionKind",
    "ActionSpec",
    "ChainTarget",
    "ContractAction",
    "ContractLanguage",
    "FileAction",
    "ShellAction",
    "describe_action",
    # Records
    "ACTION_VALID_TRANSITIONS",
    "TERMINAL_STATUSES",
    "ActionRecord",
    "ActionStatus",
    "RecordChange",
    "validate_action_transition",
    "ActionStore",
    "StatusHistory",
    "StatusLogger",
    # Execution
    "CancellationToken",
    "ActionHandler",
    "ActionHandlers",
    "FileActionHandler",
    "ShellActionHandler",
    "ContractActionHandler",
    "ActionSequencer",
    # Upstream
    "ActionEvent",
    "ActionStreamConsumer",
    "Plan",
]
