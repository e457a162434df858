"""
One-shot deferred callbacks for a single-threaded main loop.

Callbacks only run from ``run_due``, which the owning loop calls between
frames, so a timer can never fire while a frame is being processed.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimerHandle:
    due: float
    callback: Callable[[], None]
    seq: int
    cancelled: bool = False
    fired: bool = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class FrameScheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._timers: List[TimerHandle] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(
            due=self.clock() + delay, callback=callback, seq=next(self._seq)
        )
        self._timers.append(handle)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> None:
        """Cancel a pending timer. Safe on None or already fired handles."""
        if handle is None or not handle.active:
            return
        handle.cancelled = True
        self._timers = [t for t in self._timers if t is not handle]

    def run_due(self, now: Optional[float] = None) -> int:
        """Run every callback whose due time has passed, oldest first."""
        if now is None:
            now = self.clock()
        due = sorted(
            (t for t in self._timers if t.due <= now),
            key=lambda t: (t.due, t.seq),
        )
        ran = 0
        for handle in due:
            # An earlier callback may have cancelled this one.
            if not handle.active:
                continue
            handle.fired = True
            self._timers = [t for t in self._timers if t is not handle]
            handle.callback()
            ran += 1
        if ran:
            logger.debug("Ran %d deferred callback(s)", ran)
        return ran
