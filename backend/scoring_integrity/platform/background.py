"""Background task submission with an observable error channel.

Side effects that must not delay or break scoring (audit sinks, analytics
writers) are scheduled here instead of being fired and forgotten. Failures
are logged and published to a ``TelemetryChannel`` the caller can inspect or
subscribe to.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set

from ..shared.utils import utcnow

logger = logging.getLogger(__name__)

TelemetrySubscriber = Callable[["TelemetryEvent"], None]


@dataclass(frozen=True)
class TelemetryEvent:
    task_name: str
    status: str  # "succeeded" | "failed" | "cancelled"
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    occurred_at: datetime = field(default_factory=utcnow)


class TelemetryChannel:
    """Bounded in-memory buffer of background outcomes plus subscribers."""

    def __init__(self, max_events: int = 500, record_successes: bool = False):
        self._events: Deque[TelemetryEvent] = deque(maxlen=max_events)
        self._subscribers: List[TelemetrySubscriber] = []
        self.record_successes = record_successes

    @property
    def events(self) -> List[TelemetryEvent]:
        return list(self._events)

    @property
    def failures(self) -> List[TelemetryEvent]:
        return [event for event in self._events if event.status == "failed"]

    def subscribe(self, callback: TelemetrySubscriber) -> None:
        self._subscribers.append(callback)

    def publish(self, event: TelemetryEvent) -> None:
        if event.status == "succeeded" and not self.record_successes:
            return
        self._events.append(event)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as exc:
                logger.warning("Telemetry subscriber failed for task=%s: %s", event.task_name, exc)


class BackgroundTaskRunner:
    """Schedules coroutines on the running loop and reports their outcome."""

    def __init__(self, channel: TelemetryChannel | None = None):
        self.channel = channel or TelemetryChannel()
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def submit(self, coro: Awaitable[Any], name: str = "background") -> asyncio.Task:
        """Schedule ``coro``; must be called from inside a running event loop."""
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every pending task to settle."""
        if not self._pending:
            return
        await asyncio.wait(set(self._pending), timeout=timeout)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        name = task.get_name()
        if task.cancelled():
            self.channel.publish(TelemetryEvent(task_name=name, status="cancelled"))
            return
        exc = task.exception()
        if exc is None:
            self.channel.publish(TelemetryEvent(task_name=name, status="succeeded"))
            return
        logger.warning("Background task failed (task=%s): %s", name, exc)
        self.channel.publish(
            TelemetryEvent(
                task_name=name,
                status="failed",
                error_type=type(exc).__name__,
                error_message=str(exc)[:500],
            )
        )
