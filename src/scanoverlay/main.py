"""
scanoverlay - live code scanning with on-screen boxes and a result list.

Main application orchestrating:
- Threaded camera capture
- Threaded code detection
- Scan session updates with debounce clearing
- Overlay window with Start/Stop control

Architecture:
    Capture Thread → Detection Thread → Main Thread
         ↓                ↓                 ↓
    Latest Frame    Detection Queue     Session + Timers + GUI

Only the main thread touches the scan session and its scheduler.
"""

import argparse
import logging
import queue
import threading
import time
from typing import Optional, Sequence, Tuple

import cv2

from .camera import open_camera, to_portrait
from .code_detector import CodeDetector
from .config import load_config, validate_config
from .geometry import DetectionFrame, DeviceMetrics
from .overlay_gui import OverlayGUI
from .scan_session import ScannedEntry, ScanSession
from .scheduler import FrameScheduler

logger = logging.getLogger(__name__)


class _FPSCounter:
    """Simple FPS counter that updates every second."""

    def __init__(self):
        self._count = 0
        self._last_time = time.monotonic()
        self.fps = 0.0

    def tick(self):
        self._count += 1
        now = time.monotonic()
        elapsed = now - self._last_time
        if elapsed >= 1.0:
            self.fps = self._count / elapsed
            self._count = 0
            self._last_time = now


class _PerfStats:
    """Thread-safe container for performance metrics across pipeline stages."""

    def __init__(self):
        self._lock = threading.Lock()
        self.capture_fps = 0.0
        self.detect_fps = 0.0
        self.detect_latency_ms = 0.0
        self.gui_fps = 0.0

    def update_capture(self, fps):
        with self._lock:
            self.capture_fps = fps

    def update_detect(self, fps, latency_ms):
        with self._lock:
            self.detect_fps = fps
            self.detect_latency_ms = latency_ms

    def update_gui(self, fps):
        with self._lock:
            self.gui_fps = fps

    def snapshot(self):
        with self._lock:
            return (
                self.capture_fps,
                self.detect_fps,
                self.detect_latency_ms,
                self.gui_fps,
            )


class _LatestFrame:
    """Thread-safe storage for latest captured frame with version tracking."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame = None
        self._version = 0

    def update(self, frame) -> None:
        with self._lock:
            self._frame = frame
            self._version += 1

    def snapshot(self):
        with self._lock:
            return self._frame, self._version


def _start_capture_thread(
    cap,
    latest: _LatestFrame,
    stats: _PerfStats,
    stop: threading.Event,
    *,
    mirror: bool = False,
) -> threading.Thread:
    """
    Start camera capture thread that continuously reads frames.

    The mirror parameter horizontally flips frames (front-facing cameras).
    Frames are stored rotated to portrait, the orientation the preview and
    the detector both work in.
    """

    def run() -> None:
        fps = _FPSCounter()
        while not stop.is_set():
            ok, frame = cap.read()
            if not ok:
                time.sleep(0.01)
                continue
            if mirror:
                frame = cv2.flip(frame, 1)
            latest.update(to_portrait(frame))
            fps.tick()
            stats.update_capture(fps.fps)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


def _start_detection_thread(
    detector: CodeDetector,
    latest: _LatestFrame,
    out: "queue.Queue[DetectionFrame]",
    stats: _PerfStats,
    stop: threading.Event,
) -> threading.Thread:
    """
    Start detection thread that processes latest frames.

    Every processed frame is queued, including frames without codes;
    the session decides what to do with them.
    """

    def run() -> None:
        last_seen = -1
        fps = _FPSCounter()
        while not stop.is_set():
            frame, version = latest.snapshot()
            if frame is None or version == last_seen:
                time.sleep(0.005)
                continue
            last_seen = version
            t0 = time.monotonic()
            detection = detector.detect_frame(frame)
            latency_ms = (time.monotonic() - t0) * 1000.0
            fps.tick()
            stats.update_detect(fps.fps, latency_ms)
            out.put(detection)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


def _deliver_detections(
    session: ScanSession, detections: "queue.Queue[DetectionFrame]"
) -> int:
    """Feed every queued detection frame into the session, oldest first."""
    delivered = 0
    while True:
        try:
            detection = detections.get_nowait()
        except queue.Empty:
            return delivered
        session.on_detection_frame(detection)
        delivered += 1


def _describe_codes(entries: Sequence[ScannedEntry]) -> str:
    return ", ".join(f"{e.value} ({e.scan_time_ms} ms)" for e in entries)


def _metrics_from_config(display_cfg: dict) -> DeviceMetrics:
    return DeviceMetrics.from_window(
        display_cfg["width_dips"],
        display_cfg["height_dips"],
        display_cfg["pixel_ratio"],
    )


def _wait_on_unavailable(gui: Optional[OverlayGUI], session: ScanSession) -> int:
    if not gui:
        return 1
    while gui.render_unavailable(session.is_scanning):
        time.sleep(0.03)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main application entry point."""
    parser = argparse.ArgumentParser(description="Live code scanner overlay")
    parser.add_argument("--config", help="Path to config TOML (default: built-in)")
    parser.add_argument("--no-gui", action="store_true", help="Disable overlay window")
    parser.add_argument(
        "--autostart", action="store_true", help="Start scanning immediately"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    validate_config(config)

    cam_cfg = config["camera"]
    scanner_cfg = config["scanner"]
    session_cfg = config["session"]
    ui_cfg = config["ui"]

    metrics = _metrics_from_config(config["display"])
    scheduler = FrameScheduler()
    session = ScanSession(
        metrics,
        scheduler,
        clear_delay_seconds=session_cfg["clear_delay_ms"] / 1000.0,
    )
    if args.autostart or session_cfg["autostart"]:
        session.start()

    show_gui = ui_cfg["show"] and not args.no_gui
    gui = OverlayGUI(metrics, on_toggle=session.toggle) if show_gui else None

    try:
        cap = open_camera(
            cam_cfg["index"],
            cam_cfg["preferred_width"],
            cam_cfg["preferred_height"],
            cam_cfg["fps"],
        )
    except RuntimeError as exc:
        logger.error("%s", exc)
        try:
            return _wait_on_unavailable(gui, session)
        finally:
            session.dispose()
            if gui:
                gui.close()

    detector = CodeDetector(
        backend=scanner_cfg["backend"], code_types=scanner_cfg["code_types"]
    )

    latest_frame = _LatestFrame()
    detection_queue: "queue.Queue[DetectionFrame]" = queue.Queue()
    stop_event = threading.Event()
    perf_stats = _PerfStats()

    cap_thread = _start_capture_thread(
        cap, latest_frame, perf_stats, stop_event, mirror=cam_cfg["mirror"]
    )
    det_thread = _start_detection_thread(
        detector, latest_frame, detection_queue, perf_stats, stop_event
    )

    last_frame_version = -1
    last_logged: Tuple[str, ...] = ()
    gui_fps = _FPSCounter()
    try:
        while True:
            _deliver_detections(session, detection_queue)
            scheduler.run_due()

            frame, frame_version = latest_frame.snapshot()
            # No new frame: keep the GUI responsive without re-rendering
            if frame is None or frame_version == last_frame_version:
                if gui:
                    if not gui.process_events():
                        break
                else:
                    time.sleep(0.005)
                continue
            last_frame_version = frame_version

            gui_fps.tick()
            perf_stats.update_gui(gui_fps.fps)

            if gui:
                keep_running = gui.render(
                    frame,
                    session.boxes,
                    session.unique_codes,
                    session.is_scanning,
                    perf_stats=perf_stats,
                )
                if not keep_running:
                    break
            else:
                codes = session.unique_codes
                values = tuple(e.value for e in codes)
                if values and values != last_logged:
                    logger.info("Scanned: %s", _describe_codes(codes))
                last_logged = values
                time.sleep(0.005)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        session.dispose()
        stop_event.set()
        cap_thread.join(timeout=1.0)
        det_thread.join(timeout=1.0)
        cap.release()
        if gui:
            gui.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
