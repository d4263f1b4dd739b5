"""Per-action cancellation token.

The token is an explicit capability passed into each handler call.
Raising it never preempts the handler: the handler checks ``cancelled``
at its suspension points (before and after each sandbox call) and
returns promptly.  Callbacks let a handler forward the request to
something that *can* be interrupted, such as a live subprocess::

    remove = token.add_callback(process.kill)
    try:
        exit_code = await process.wait()
    finally:
        remove()
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from actionlane.core.errors import ActionCancelledError
from actionlane.core.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Cooperative, one-shot cancellation signal."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], object]] = []
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Raise the signal. Returns True only for the first call."""
        if self._cancelled:
            return False
        self._cancelled = True

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback)

        if self._event is not None:
            self._event.set()
        return True

    def add_callback(self, callback: Callable[[], object]) -> Callable[[], None]:
        """Run *callback* on cancellation; immediately if already cancelled.

        Returns a callable that unregisters the callback.
        """
        if self._cancelled:
            self._invoke(callback)
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass  # already fired or removed

        return remove

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ActionCancelledError("Action was cancelled")

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    @staticmethod
    def _invoke(callback: Callable[[], object]) -> None:
        try:
            callback()
        except Exception as exc:
            # One broken callback must not keep the others (e.g. kill) from running
            logger.warning("cancellation.callback_failed", error=str(exc), error_type=type(exc).__name__)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
