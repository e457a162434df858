"""
Scan session state for live code detections with debounce clearing.

Each accepted detection frame replaces the displayed boxes and decoded
values wholesale. A short clear timer removes them once frames with codes
stop arriving, so stale boxes never linger on screen.
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple, Union

from .geometry import DetectionFrame, DeviceMetrics, DisplayBox, map_codes
from .scheduler import FrameScheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_CLEAR_DELAY_SECONDS = 0.3


@dataclass(frozen=True)
class ScannedEntry:
    """A decoded value from the latest frame."""

    value: str
    scan_time_ms: int  # intra-frame processing time, not session time


@dataclass(frozen=True)
class SessionState:
    is_scanning: bool = False
    boxes: Tuple[DisplayBox, ...] = ()
    unique_codes: Tuple[ScannedEntry, ...] = ()

    def cleared(self) -> "SessionState":
        return replace(self, boxes=(), unique_codes=())


@dataclass(frozen=True)
class StartScanning:
    pass


@dataclass(frozen=True)
class StopScanning:
    pass


@dataclass(frozen=True)
class ClearTimerExpired:
    pass


@dataclass(frozen=True)
class CancelClearTimer:
    pass


@dataclass(frozen=True)
class ScheduleClear:
    delay_seconds: float


Event = Union[StartScanning, StopScanning, DetectionFrame, ClearTimerExpired]
Effect = Union[CancelClearTimer, ScheduleClear]


class SessionMachine:
    """
    Pure transition function for the scan session.

    ``transition`` never touches timers itself; it returns the timer work
    as effects for the owner to apply. The clock is only read while
    timing per-code processing of a detection frame.
    """

    def __init__(
        self,
        metrics: DeviceMetrics,
        clock: Callable[[], float] = time.monotonic,
        clear_delay_seconds: float = DEFAULT_CLEAR_DELAY_SECONDS,
    ):
        self.metrics = metrics
        self.clock = clock
        self.clear_delay_seconds = clear_delay_seconds

    def transition(
        self, state: SessionState, event: Event
    ) -> Tuple[SessionState, List[Effect]]:
        if isinstance(event, StartScanning):
            if state.is_scanning:
                return state, []
            return replace(state, is_scanning=True), []

        if isinstance(event, StopScanning):
            if not state.is_scanning:
                return state, []
            return SessionState(is_scanning=False), []

        if isinstance(event, ClearTimerExpired):
            return state.cleared(), []

        if isinstance(event, DetectionFrame):
            return self._on_frame(state, event)

        raise TypeError(f"Unknown session event: {event!r}")

    def _on_frame(
        self, state: SessionState, frame: DetectionFrame
    ) -> Tuple[SessionState, List[Effect]]:
        if not state.is_scanning:
            return state, []

        effects: List[Effect] = [CancelClearTimer()]
        if not frame.codes:
            return state.cleared(), effects

        start = self.clock()
        boxes = tuple(map_codes(frame, self.metrics))
        entries = tuple(
            ScannedEntry(value=code.value, scan_time_ms=self._elapsed_ms(start))
            for code in frame.codes
            if code.value is not None
        )
        effects.append(ScheduleClear(self.clear_delay_seconds))
        return replace(state, boxes=boxes, unique_codes=entries), effects

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self.clock() - start) * 1000.0))


class ScanSession:
    """
    Owns the session state, its transition machine and the clear timer.

    Timer handle lifecycle:
    - acquired when a frame with codes schedules a clear
    - released by the next frame, by ``dispose`` or when it fires

    ``stop`` leaves a pending clear in place; firing on an already empty
    state is harmless. After ``dispose`` every event is ignored.
    """

    def __init__(
        self,
        metrics: DeviceMetrics,
        scheduler: FrameScheduler,
        clock: Optional[Callable[[], float]] = None,
        clear_delay_seconds: float = DEFAULT_CLEAR_DELAY_SECONDS,
    ):
        self._machine = SessionMachine(
            metrics,
            clock=clock or scheduler.clock,
            clear_delay_seconds=clear_delay_seconds,
        )
        self._scheduler = scheduler
        self._state = SessionState()
        self._clear_timer: Optional[TimerHandle] = None
        self._disposed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_scanning(self) -> bool:
        return self._state.is_scanning

    @property
    def boxes(self) -> Tuple[DisplayBox, ...]:
        return self._state.boxes

    @property
    def unique_codes(self) -> Tuple[ScannedEntry, ...]:
        return self._state.unique_codes

    @property
    def has_pending_clear(self) -> bool:
        return self._clear_timer is not None and self._clear_timer.active

    def start(self) -> None:
        self._dispatch(StartScanning())

    def stop(self) -> None:
        self._dispatch(StopScanning())

    def toggle(self) -> None:
        if self.is_scanning:
            self.stop()
        else:
            self.start()

    def on_detection_frame(self, frame: DetectionFrame) -> None:
        self._dispatch(frame)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._scheduler.cancel(self._clear_timer)
        self._clear_timer = None
        self._disposed = True
        logger.debug("Scan session disposed")

    def _on_clear_timer(self) -> None:
        self._clear_timer = None
        self._dispatch(ClearTimerExpired())

    def _dispatch(self, event: Event) -> None:
        if self._disposed:
            logger.debug("Ignoring %s after dispose", type(event).__name__)
            return
        previous = self._state
        self._state, effects = self._machine.transition(previous, event)
        for effect in effects:
            self._apply(effect)
        if previous.is_scanning != self._state.is_scanning:
            logger.info(
                "Scanning %s", "started" if self._state.is_scanning else "stopped"
            )

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, CancelClearTimer):
            self._scheduler.cancel(self._clear_timer)
            self._clear_timer = None
        elif isinstance(effect, ScheduleClear):
            # Keep at most one live timer even if a cancel was not emitted.
            self._scheduler.cancel(self._clear_timer)
            self._clear_timer = self._scheduler.call_later(
                effect.delay_seconds, self._on_clear_timer
            )
