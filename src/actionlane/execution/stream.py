"""Upstream action discovery - feeding parser events into the lane.

The plan parser emits ``ActionEvent``s as it reads a streamed response.
The same ``action_id`` typically arrives several times with growing
content before ``content_complete`` is true; the first complete event
is the finalize trigger and later ones are ignored.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass

from actionlane.core.logging import get_logger
from actionlane.execution.actions import ActionSpec
from actionlane.execution.sequencer import ActionSequencer

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActionEvent:
    """One announcement from the upstream parser."""

    action_id: str
    action: ActionSpec
    content_complete: bool = False


class ActionStreamConsumer:
    """Translate parser events into register / finalize calls."""

    def __init__(self, sequencer: ActionSequencer) -> None:
        self.sequencer = sequencer
        self._finalized: set[str] = set()

    def feed(self, event: ActionEvent) -> bool:
        """Apply one event. Returns True if it finalized the action."""
        self.sequencer.register(event.action_id, event.action)

        if not event.content_complete:
            return False
        if event.action_id in self._finalized:
            logger.debug("stream.duplicate_complete", action_id=event.action_id)
            return False

        self._finalized.add(event.action_id)
        return self.sequencer.finalize(event.action_id, event.action)

    async def consume(self, events: Iterable[ActionEvent] | AsyncIterable[ActionEvent]) -> int:
        """Feed every event; returns how many actions were finalized."""
        finalized = 0
        if isinstance(events, AsyncIterable):
            async for event in events:
                finalized += self.feed(event)
        else:
            for event in events:
                finalized += self.feed(event)
        return finalized
