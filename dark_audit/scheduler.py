"""Mutation-driven rescan scheduling with a single debounce timer."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Protocol

from .dom import DomDocument, MutationObserver, MutationRecord

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    """Anything that can run a callback after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class _DeferredTimer:
    """A timer requested while no event loop was running."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.handle: asyncio.TimerHandle | None = None

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class AsyncioTimers:
    """Timer backend on an asyncio event loop.

    The loop is the one given, else the loop running at construction, else
    whichever loop is running when a timer is requested. Timers requested
    with no loop available are held until ``attach()`` (or the next request
    made under a running loop) arms them.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        self._loop = loop
        self._deferred: list[_DeferredTimer] = []

    def _current_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    @property
    def deferred(self) -> int:
        return sum(1 for t in self._deferred if not t.cancelled)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._current_loop()
        if loop is None:
            logger.debug("No running event loop, deferring timer (%.3fs)", delay)
            timer = _DeferredTimer(delay, callback)
            self._deferred.append(timer)
            return timer
        self.attach(loop)
        return loop.call_later(delay, callback)

    def attach(self, loop: asyncio.AbstractEventLoop | None = None):
        """Bind to ``loop`` (the running one by default) and arm deferred timers."""
        self._loop = loop or asyncio.get_running_loop()
        deferred, self._deferred = self._deferred, []
        for timer in deferred:
            if not timer.cancelled:
                timer.handle = self._loop.call_later(timer.delay, timer.callback)


class SchedulerState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    DISABLED = "disabled"


class MutationScheduler:
    """Coalesces structural mutations into one scan after a quiet period.

    Every structural mutation batch restarts the debounce timer, so a burst
    of edits yields a single scan. Once ``cap_reached`` reports true the
    scheduler disables itself for good and stops observing the document.
    """

    def __init__(
        self,
        run_scan: Callable[[], object],
        cap_reached: Callable[[], bool],
        timers: Timers,
        delay_ms: int = 600,
    ):
        self.run_scan = run_scan
        self.cap_reached = cap_reached
        self.timers = timers
        self.delay_ms = delay_ms
        self.state = SchedulerState.IDLE
        self.scans_run = 0
        self._handle: TimerHandle | None = None
        self._observer: MutationObserver | None = None

    @property
    def observing(self) -> bool:
        return self._observer is not None and self._observer.connected

    def watch(self, document: DomDocument):
        if self.state is SchedulerState.DISABLED or self.observing:
            return
        self._observer = document.observe(self.on_mutations)

    def on_mutations(self, records: list[MutationRecord]):
        if self.state is SchedulerState.DISABLED:
            return
        if self.cap_reached():
            self.disable()
            return
        if any(r.is_structural for r in records):
            self.schedule()

    def schedule(self):
        """(Re)start the debounce timer, replacing any pending one."""
        if self.state is SchedulerState.DISABLED:
            return
        if self.cap_reached():
            self.disable()
            return
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.timers.call_later(self.delay_ms / 1000, self._fire)
        self.state = SchedulerState.DEBOUNCING

    def _fire(self):
        self._handle = None
        if self.state is SchedulerState.DISABLED:
            return
        self.state = SchedulerState.IDLE
        self.scans_run += 1
        self.run_scan()
        if self.cap_reached():
            self.disable()

    def disable(self):
        """Terminal: cancel the pending timer and stop observing mutations."""
        if self.state is SchedulerState.DISABLED:
            return
        self.state = SchedulerState.DISABLED
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._observer is not None:
            self._observer.disconnect()
        logger.info("Scheduler disabled after %d scan(s); mutations are no longer observed", self.scans_run)
