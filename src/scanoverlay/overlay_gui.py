"""
OpenCV window presenting the scan session.

Shows the camera preview scaled to the configured screen with:
- one highlighted rectangle per detected code
- the code's corner outline
- a bottom panel listing decoded values and their scan time
- a Start/Stop button

Controls:
- Click the button or press 's' to start/stop scanning
- Press 'q' to quit
"""

import math
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from .geometry import DeviceMetrics, DisplayBox
from .scan_session import ScannedEntry

PANEL_TITLE = "Scanned QR Codes"
UNAVAILABLE_TEXT = "No Camera available or scanning is stopped."


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def scale_preview(portrait, metrics: DeviceMetrics):
    """Stretch a portrait camera image to the physical screen size."""
    return cv2.resize(
        portrait,
        (metrics.screen_width_pixels_rounded, metrics.screen_height_pixels_rounded),
    )


def box_rect_px(
    box: DisplayBox, pixel_ratio: float
) -> Optional[Tuple[int, int, int, int]]:
    """Physical-pixel (x1, y1, x2, y2) of a box, or None if not drawable."""
    if not _finite(box.x, box.y, box.width, box.height):
        return None
    return (
        int(round(box.x * pixel_ratio)),
        int(round(box.y * pixel_ratio)),
        int(round((box.x + box.width) * pixel_ratio)),
        int(round((box.y + box.height) * pixel_ratio)),
    )


def corner_polyline_px(box: DisplayBox) -> List[Tuple[int, int]]:
    # Corners are already in physical pixels.
    return [(int(x), int(y)) for x, y in box.corner_points() if _finite(x, y)]


def draw_boxes(
    canvas, boxes: Iterable[DisplayBox], pixel_ratio: float, color, thickness: int
) -> None:
    for box in boxes:
        rect = box_rect_px(box, pixel_ratio)
        if rect is not None:
            x1, y1, x2, y2 = rect
            cv2.rectangle(canvas, (x1, y1), (x2, y2), color, thickness)
        pts = corner_polyline_px(box)
        if len(pts) >= 2:
            cv2.polylines(canvas, [np.array(pts, dtype="int32")], True, color, 2)


class OverlayGUI:
    """Preview window with box overlay, result list and scan toggle."""

    def __init__(
        self,
        metrics: DeviceMetrics,
        on_toggle: Optional[Callable[[], None]] = None,
        panel_ratio: float = 0.4,
    ):
        self.highlight = (0, 255, 170)  # #aaff00 in BGR
        self.white = (255, 255, 255)
        self.black = (0, 0, 0)
        self.gray = (128, 128, 128)
        self.window_name = "scanoverlay"
        self.metrics = metrics
        self._on_toggle = on_toggle
        self._panel_ratio = panel_ratio
        self._button_rect = None
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(
            self.window_name,
            metrics.screen_width_pixels_rounded,
            metrics.screen_height_pixels_rounded,
        )
        cv2.setMouseCallback(self.window_name, self._on_mouse)

    @property
    def _size(self):
        return (
            self.metrics.screen_width_pixels_rounded,
            self.metrics.screen_height_pixels_rounded,
        )

    def _px(self, value: float) -> int:
        return int(round(value * self.metrics.pixel_ratio))

    def _on_mouse(self, event, x, y, flags, param=None):
        if event != cv2.EVENT_LBUTTONDOWN or not self._button_rect:
            return
        bx1, by1, bx2, by2 = self._button_rect
        if bx1 <= x <= bx2 and by1 <= y <= by2 and self._on_toggle:
            self._on_toggle()

    def render(
        self,
        frame,
        boxes: Iterable[DisplayBox],
        unique_codes: Sequence[ScannedEntry],
        is_scanning: bool,
        perf_stats=None,
    ) -> bool:
        """
        Draw the preview with overlays and show it.

        Args:
            frame: Latest portrait camera image (not modified)
            boxes: Display boxes; rect in DIPs, corners in physical pixels
            unique_codes: Decoded values of the latest frame
            is_scanning: Selects the Start/Stop button label
            perf_stats: Optional performance metrics object

        Returns:
            True to continue, False if user quit
        """
        canvas = scale_preview(frame, self.metrics)
        draw_boxes(
            canvas,
            boxes,
            self.metrics.pixel_ratio,
            self.highlight,
            max(1, self._px(5)),
        )

        self._draw_panel(canvas, unique_codes, is_scanning)

        if perf_stats is not None:
            cap_fps, det_fps, det_ms, gui_fps = perf_stats.snapshot()
            perf_line = (
                f"CAP {cap_fps:.0f}fps | "
                f"DET {det_fps:.0f}fps {det_ms:.0f}ms | "
                f"GUI {gui_fps:.0f}fps"
            )
            cv2.putText(
                canvas,
                perf_line,
                (self._px(8), self._px(20)),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.4 * self.metrics.pixel_ratio,
                self.highlight,
                max(1, self._px(1)),
                cv2.LINE_AA,
            )

        return self._show(canvas)

    def render_unavailable(self, is_scanning: bool = False) -> bool:
        """Fallback screen when the camera could not be opened."""
        width, height = self._size
        canvas = np.full((height, width, 3), 255, dtype="uint8")
        cv2.putText(
            canvas,
            UNAVAILABLE_TEXT,
            (self._px(8), self._px(40)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.35 * self.metrics.pixel_ratio,
            self.black,
            max(1, self._px(1)),
            cv2.LINE_AA,
        )
        self._draw_panel(canvas, [], is_scanning)
        return self._show(canvas)

    def _draw_panel(
        self, canvas, unique_codes: Sequence[ScannedEntry], is_scanning: bool
    ) -> None:
        width, height = self._size
        top = int(height * (1.0 - self._panel_ratio))
        cv2.rectangle(canvas, (0, top), (width, height), self.white, -1)

        scale = 0.5 * self.metrics.pixel_ratio
        line = max(1, self._px(1))
        font = cv2.FONT_HERSHEY_SIMPLEX
        (title_w, title_h), _ = cv2.getTextSize(PANEL_TITLE, font, scale, line + 1)
        y = top + self._px(10) + title_h
        cv2.putText(
            canvas,
            PANEL_TITLE,
            ((width - title_w) // 2, y),
            font,
            scale,
            self.black,
            line + 1,
            cv2.LINE_AA,
        )

        button_h = self._px(32)
        button_top = height - button_h - self._px(10)
        row_h = self._px(24)
        y += self._px(10)
        for entry in unique_codes:
            if y + row_h > button_top:
                break
            y += row_h
            cv2.putText(
                canvas,
                entry.value,
                (self._px(10), y),
                font,
                0.45 * self.metrics.pixel_ratio,
                self.black,
                line,
                cv2.LINE_AA,
            )
            ms_text = f"{entry.scan_time_ms} ms"
            (ms_w, _), _ = cv2.getTextSize(
                ms_text, font, 0.4 * self.metrics.pixel_ratio, line
            )
            cv2.putText(
                canvas,
                ms_text,
                (width - ms_w - self._px(10), y),
                font,
                0.4 * self.metrics.pixel_ratio,
                self.gray,
                line,
                cv2.LINE_AA,
            )

        label = "Stop" if is_scanning else "Start"
        button_w = self._px(96)
        bx1 = (width - button_w) // 2
        self._button_rect = (bx1, button_top, bx1 + button_w, button_top + button_h)
        cv2.rectangle(
            canvas,
            (bx1, button_top),
            (bx1 + button_w, button_top + button_h),
            (243, 150, 33),
            -1,
        )
        (label_w, label_h), _ = cv2.getTextSize(label, font, scale, line)
        cv2.putText(
            canvas,
            label,
            (bx1 + (button_w - label_w) // 2, button_top + (button_h + label_h) // 2),
            font,
            scale,
            self.white,
            line,
            cv2.LINE_AA,
        )

    def _show(self, canvas) -> bool:
        try:
            if cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 0:
                return False
            cv2.imshow(self.window_name, canvas)
            return self._handle_key()
        except cv2.error:
            return True

    def process_events(self) -> bool:
        """
        Poll keyboard/mouse events without rendering a frame.

        Returns:
            True to continue, False if user quit
        """
        try:
            return self._handle_key()
        except cv2.error:
            return True

    def _handle_key(self) -> bool:
        """Handle keyboard input. Returns False if user pressed 'q' to quit."""
        key = cv2.waitKey(1) & 0xFF
        if key == ord("s") and self._on_toggle:
            self._on_toggle()
        return key != ord("q")

    def close(self) -> None:
        cv2.destroyWindow(self.window_name)
