"""Shared fixtures: a manual clock driving the scheduler and session."""
from __future__ import annotations

import pytest

from scanoverlay.geometry import DeviceMetrics, FrameSize
from scanoverlay.scan_session import ScanSession
from scanoverlay.scheduler import FrameScheduler
from fakes import ManualClock


@pytest.fixture()
def metrics() -> DeviceMetrics:
    # 360x800 DIPs at 3x -> 1080x2400 physical pixels
    return DeviceMetrics.from_window(360, 800, 3)


@pytest.fixture()
def frame_size() -> FrameSize:
    return FrameSize(width=480, height=640)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def scheduler(clock) -> FrameScheduler:
    return FrameScheduler(clock)


@pytest.fixture()
def session(metrics, scheduler) -> ScanSession:
    s = ScanSession(metrics, scheduler)
    yield s
    s.dispose()
