"""Action sequencer - the single execution lane.

The sequencer accepts a growing stream of declared actions and executes
them strictly one at a time, in the order their *finalize* events
arrived, regardless of kind.

ARCHITECTURE
────────────
::

    register(id, spec) ─→ ActionStore (pending)
    finalize(id)       ─→ asyncio.Queue  (FIFO, each id at most once)
                                │
                                ▼
                         lane task (one)
                           ├── skip if executed / no longer pending
                           ├── pending → running, executed = True
                           ├── await handler.execute(spec, sandbox, token)
                           ├── returned  → complete | aborted (token raised)
                           └── raised    → failed (lane keeps draining)

    cancel(id)
      ├── pending → aborted immediately (handler never invoked)
      └── running → token raised; the handler forwards kill() to a live
                    process and the lane records aborted once it returns

Why one lane:
    Actions share one mutable sandbox (file system, process environment).
    Serializing them keeps writes to overlapping files and shell side
    effects from interleaving.  Independent sandboxes may each get their
    own sequencer.

There is no timeout: a handler that never returns stalls the lane.

Example::

    async with ActionSequencer(LocalSandbox("/tmp/app")) as lane:
        lane.register("1", FileAction(path="a.txt", content="hi"))
        lane.finalize("1")
        await lane.join()
        assert lane.store.get("1").status is ActionStatus.COMPLETE
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any

from actionlane.contracts.compiler import ContractCompiler
from actionlane.core.errors import ActionCancelledError, ActionNotFoundError
from actionlane.core.logging import LogContext, get_logger
from actionlane.core.settings import ActionLaneSettings, get_settings
from actionlane.execution.actions import ActionSpec, describe_action
from actionlane.execution.handlers import ActionHandlers, OutputSink
from actionlane.execution.models import ActionRecord, ActionStatus, utcnow
from actionlane.execution.store import ActionStore
from actionlane.sandbox.protocol import Sandbox

logger = get_logger(__name__)

_STOP = object()


class ActionSequencer:
    """Owns one logical execution lane over one sandbox."""

    def __init__(
        self,
        sandbox: Sandbox,
        *,
        store: ActionStore | None = None,
        handlers: ActionHandlers | None = None,
        compiler: ContractCompiler | None = None,
        sink: OutputSink | None = None,
        settings: ActionLaneSettings | None = None,
        name: str = "lane",
    ) -> None:
        """
        Args:
            sandbox: File system + process spawner every action runs against.
            store: Record store (a fresh one if omitted).
            handlers: Handler set; built from *settings*, *sink* and
                *compiler* when omitted.
            compiler: Contract compiler service (default: SmartContractCompiler).
            sink: Receives shell output chunks.
            settings: Configuration (default: cached ``get_settings()``).
            name: Lane name used in logs.
        """
        self.sandbox = sandbox
        self.store = store or ActionStore()
        self.settings = settings or get_settings()
        self.handlers = handlers or ActionHandlers(settings=self.settings, sink=sink, compiler=compiler)
        self.name = name

        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._enqueued: set[str] = set()
        self._lane: asyncio.Task[None] | None = None
        self._current: str | None = None
        self._stopping = False

    # ── Upstream events ──────────────────────────────────────────────

    def register(self, action_id: str, spec: ActionSpec) -> ActionRecord:
        """Declare an action (pending).

        A repeated registration while the action is still pending and not
        finalized replaces its spec (streaming refinement).  Once the action
        has been finalized, started or settled the call is a no-op.
        """
        record = self.store.get(action_id)
        if record is None:
            record = self.store.register(action_id, spec, cancel=functools.partial(self.cancel, action_id))
            logger.debug("lane.action_registered", lane=self.name, action_id=action_id, **describe_action(spec))
            return record

        if (
            record.status is ActionStatus.PENDING
            and not record.executed
            and action_id not in self._enqueued
            and record.spec != spec
        ):
            self.store.update(action_id, spec=spec)
            logger.debug("lane.action_refined", lane=self.name, action_id=action_id)
        return record

    def finalize(self, action_id: str, spec: ActionSpec | None = None) -> bool:
        """Mark an action's content complete and enqueue it on the lane.

        Args:
            action_id: A registered identifier.
            spec: Final spec; replaces the pending one when given.

        Returns:
            True if the action was enqueued, False for a duplicate finalize.

        Raises:
            ActionNotFoundError: *action_id* was never registered.
        """
        record = self.store.get(action_id)
        if record is None:
            raise ActionNotFoundError(action_id)

        if action_id in self._enqueued or record.executed:
            logger.debug("lane.duplicate_finalize", lane=self.name, action_id=action_id)
            return False

        if spec is not None:
            self.register(action_id, spec)

        self._enqueued.add(action_id)
        self._queue.put_nowait(action_id)
        self.start()
        logger.debug("lane.action_enqueued", lane=self.name, action_id=action_id, depth=self._queue.qsize())
        return True

    def cancel(self, action_id: str) -> bool:
        """Abort an action.

        Pending actions move straight to aborted.  Running actions get their
        token raised; the lane records aborted when the handler returns.

        Returns:
            True if the request changed anything.
        """
        record = self.store.get(action_id)
        if record is None:
            logger.warning("lane.cancel_unknown_action", lane=self.name, action_id=action_id)
            return False

        if record.status is ActionStatus.PENDING:
            record.token.cancel()
            self.store.update(action_id, status=ActionStatus.ABORTED, finished_at=utcnow())
            logger.info("lane.action_aborted", lane=self.name, action_id=action_id, while_status="pending")
            return True

        if record.status is ActionStatus.RUNNING:
            first = record.token.cancel()
            if first:
                logger.info("lane.action_cancel_requested", lane=self.name, action_id=action_id)
            return first

        logger.debug("lane.cancel_ignored", lane=self.name, action_id=action_id, status=record.status.value)
        return False

    # ── Lane lifecycle ───────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._lane is not None and not self._lane.done()

    @property
    def current_action(self) -> str | None:
        """Identifier of the action whose handler is executing, if any."""
        return self._current

    @property
    def depth(self) -> int:
        """Actions waiting on the lane (excluding the one executing)."""
        return self._queue.qsize()

    def start(self) -> None:
        """Start the lane task (idempotent). Needs a running event loop."""
        if self.running or self._stopping:
            return
        self._lane = asyncio.get_running_loop().create_task(self._run_lane(), name=f"actionlane-{self.name}")

    async def join(self) -> None:
        """Wait until every finalized action has settled.

        Re-raises the error that broke the lane, if any.
        """
        if self._lane is None:
            return
        waiter = asyncio.ensure_future(self._queue.join())
        await asyncio.wait({waiter, self._lane}, return_when=asyncio.FIRST_COMPLETED)
        if not waiter.done():
            waiter.cancel()
        if self._lane.done():
            self._lane.result()  # re-raise the broken invariant

    async def stop(self) -> None:
        """Drain the queue, then shut the lane down."""
        if self._lane is None:
            return
        lane, self._lane = self._lane, None
        if not lane.done():
            # a sentinel left behind by a dead lane would stop the next one
            self._stopping = True
            self._queue.put_nowait(_STOP)
        try:
            await lane
        finally:
            self._stopping = False

    async def __aenter__(self) -> ActionSequencer:
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    # ── Lane ─────────────────────────────────────────────────────────

    async def _run_lane(self) -> None:
        logger.debug("lane.started", lane=self.name)
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    logger.debug("lane.stopped", lane=self.name)
                    return
                await self._dispatch(item)
            finally:
                self._queue.task_done()

    async def _dispatch(self, action_id: str) -> None:
        record = self.store.get(action_id)
        if record is None:
            # finalize() only enqueues registered ids; a missing record is a broken invariant
            logger.critical("lane.record_missing", lane=self.name, action_id=action_id)
            raise ActionNotFoundError(action_id)

        if record.executed:
            logger.debug("lane.skip_executed", lane=self.name, action_id=action_id)
            return
        if record.status is not ActionStatus.PENDING:
            logger.debug("lane.skip_settled", lane=self.name, action_id=action_id, status=record.status.value)
            return

        self.store.update(action_id, status=ActionStatus.RUNNING, executed=True, started_at=utcnow())
        self._current = action_id
        spec = record.spec
        handler = self.handlers.handler_for(spec)

        async with LogContext(action_id=action_id, lane=self.name):
            logger.info("lane.action_started", **describe_action(spec))
            try:
                outcome = await handler.execute(spec, self.sandbox, record.token)
            except ActionCancelledError:
                self._settle(action_id, ActionStatus.ABORTED)
            except Exception as exc:
                self._settle(
                    action_id,
                    ActionStatus.FAILED,
                    error=str(exc) or type(exc).__name__,
                    error_type=type(exc).__name__,
                )
                logger.error("lane.action_failed", error=str(exc), error_type=type(exc).__name__)
            else:
                status = ActionStatus.ABORTED if record.token.cancelled else ActionStatus.COMPLETE
                self._settle(action_id, status, result=outcome)
            finally:
                self._current = None

    def _settle(self, action_id: str, status: ActionStatus, **fields: Any) -> None:
        record = self.store.update(action_id, status=status, finished_at=utcnow(), **fields)
        if record is not None and status is not ActionStatus.FAILED:
            logger.info("lane.action_settled", status=status.value, duration_seconds=record.duration_seconds)
