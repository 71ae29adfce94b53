import asyncio
import heapq
import itertools
from datetime import timedelta
from typing import Callable, Protocol

from legalletter.shared.clock import ManualClock


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, fn: Callable[[], None]) -> Handle: ...


class AsyncioScheduler:
    """Fire-and-forget timers on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay: float, fn: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay, 0), fn)


class ScheduledTask:
    def __init__(self, due, fn: Callable[[], None]):
        self.due = due
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-time scheduler: nothing runs until advance() moves the clock past
    a task's due time. Tasks scheduled while advancing run in the same pass if
    they fall inside the window.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._queue: list[tuple] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(self.clock.now() + timedelta(seconds=max(delay, 0)), fn)
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float = 0) -> int:
        target = self.clock.now() + timedelta(seconds=seconds)
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            if due > self.clock.now():
                self.clock.set(due)
            task.fn()
            ran += 1
        self.clock.set(target)
        return ran

    def run_pending(self) -> int:
        return self.advance(0)
