"""
Detector-frame to display-space coordinate mapping.

The detector reports geometry in its native sensor frame, whose width axis
runs along the display's vertical axis (portrait preview over a
landscape-native sensor). Horizontal quantities are therefore scaled by
``screen_width / frame.height`` and vertical ones by
``screen_height / frame.width``.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class FrameSize:
    """Detector frame dimensions in detector pixels."""

    width: float
    height: float


@dataclass(frozen=True)
class FrameRect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class RawCode:
    """One code located by the detector in a single frame."""

    value: Optional[str]  # None when located but not decoded
    frame_rect: FrameRect
    corners: List[Point] = field(default_factory=list)
    code_type: Optional[str] = None


@dataclass(frozen=True)
class DetectionFrame:
    """All codes found in one processed camera frame."""

    size: FrameSize
    codes: List[RawCode] = field(default_factory=list)


@dataclass(frozen=True)
class DeviceMetrics:
    screen_width_pixels_rounded: int
    screen_height_pixels_rounded: int
    pixel_ratio: float

    @classmethod
    def from_window(
        cls, width_dips: float, height_dips: float, pixel_ratio: float
    ) -> "DeviceMetrics":
        """
        Build metrics from a window size in display-independent units.

        Physical pixels are rounded half-up, so 0.5 always rounds away
        from zero regardless of parity.
        """
        return cls(
            screen_width_pixels_rounded=_round_half_up(width_dips * pixel_ratio),
            screen_height_pixels_rounded=_round_half_up(height_dips * pixel_ratio),
            pixel_ratio=pixel_ratio,
        )


@dataclass(frozen=True)
class DisplayBox:
    """
    A code's geometry in display space.

    ``x``/``y``/``width``/``height`` are display-independent units.
    ``corners`` stay in physical display pixels (not divided by the
    pixel ratio); consumers drawing both must convert one of them.
    """

    x: float
    y: float
    width: float
    height: float
    corners: Dict[str, float] = field(default_factory=dict)

    def corner_points(self) -> List[Tuple[float, float]]:
        count = len(self.corners) // 2
        return [
            (self.corners[f"point{i}x"], self.corners[f"point{i}y"])
            for i in range(1, count + 1)
        ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _scale(numerator: float, denominator: float) -> float:
    # Zero-sized frames are a scanner contract violation; degrade to
    # inf/nan instead of raising.
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def map_code(code: RawCode, size: FrameSize, metrics: DeviceMetrics) -> DisplayBox:
    # Always (value * screen) / frame; operand order affects float rounding.
    sw = metrics.screen_width_pixels_rounded
    sh = metrics.screen_height_pixels_rounded
    rect = code.frame_rect
    x = _scale(rect.x * sw, size.height)
    y = _scale(rect.y * sh, size.width)
    width = _scale(rect.width * sw, size.height)
    height = _scale(rect.height * sh, size.width)

    corners: Dict[str, float] = {}
    for index, corner in enumerate(code.corners, start=1):
        corners[f"point{index}x"] = _scale(corner.x * sw, size.height)
        corners[f"point{index}y"] = _scale(corner.y * sh, size.width)

    ratio = metrics.pixel_ratio
    return DisplayBox(
        x=_scale(x, ratio),
        y=_scale(y, ratio),
        width=_scale(width, ratio),
        height=_scale(height, ratio),
        corners=corners,
    )


def map_codes(frame: DetectionFrame, metrics: DeviceMetrics) -> List[DisplayBox]:
    """Map every code of a frame to display space, preserving order."""
    return [map_code(code, frame.size, metrics) for code in frame.codes]
