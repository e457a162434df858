"""Tests for the glue between detection thread output and the session."""
from __future__ import annotations

import queue

from scanoverlay import main as app
from scanoverlay.geometry import DetectionFrame
from scanoverlay.scan_session import ScannedEntry
from fakes import make_code


class TestDeliverDetections:
    def test_nothing_queued(self, session):
        assert app._deliver_detections(session, queue.Queue()) == 0

    def test_frame_is_delivered_once(self, session, frame_size):
        session.start()
        detections = queue.Queue()
        detections.put(DetectionFrame(frame_size, [make_code("a")]))
        assert app._deliver_detections(session, detections) == 1
        assert [e.value for e in session.unique_codes] == ["a"]

        session.on_detection_frame(DetectionFrame(frame_size, []))
        assert app._deliver_detections(session, detections) == 0
        assert session.unique_codes == ()

    def test_frames_queued_between_loop_turns_are_all_delivered_in_order(
        self, session, frame_size, monkeypatch
    ):
        seen = []
        monkeypatch.setattr(session, "on_detection_frame", seen.append)
        detections = queue.Queue()
        frames = [
            DetectionFrame(frame_size, [make_code("a")]),
            DetectionFrame(frame_size, []),
            DetectionFrame(frame_size, [make_code("b")]),
        ]
        for frame in frames:
            detections.put(frame)
        assert app._deliver_detections(session, detections) == 3
        assert seen == frames

    def test_empty_frames_are_delivered(self, session, frame_size):
        session.start()
        detections = queue.Queue()
        detections.put(DetectionFrame(frame_size, [make_code("a")]))
        detections.put(DetectionFrame(frame_size, []))
        assert app._deliver_detections(session, detections) == 2
        assert session.boxes == ()
        assert not session.has_pending_clear


def test_describe_codes():
    entries = (ScannedEntry("abc", 3), ScannedEntry("def", 0))
    assert app._describe_codes(entries) == "abc (3 ms), def (0 ms)"


def test_metrics_from_config():
    metrics = app._metrics_from_config({"width_dips": 360, "height_dips": 800, "pixel_ratio": 3})
    assert metrics.screen_width_pixels_rounded == 1080
    assert metrics.screen_height_pixels_rounded == 2400


def test_headless_exits_when_camera_unavailable(monkeypatch):
    def fail(*args, **kwargs):
        raise RuntimeError("Failed to open camera index 0")

    monkeypatch.setattr(app, "open_camera", fail)
    assert app.main(["--no-gui", "--autostart", "--log-level", "debug"]) == 1


def test_window_is_closed_when_camera_unavailable(monkeypatch):
    class FakeGUI:
        closed = 0

        def __init__(self, metrics, on_toggle=None):
            pass

        def render_unavailable(self, is_scanning=False):
            return False

        def close(self):
            FakeGUI.closed += 1

    def fail(*args, **kwargs):
        raise RuntimeError("Failed to open camera index 0")

    monkeypatch.setattr(app, "open_camera", fail)
    monkeypatch.setattr(app, "OverlayGUI", FakeGUI)
    assert app.main([]) == 1
    assert FakeGUI.closed == 1
