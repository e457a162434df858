"""Shared test doubles.

ManualClock stands in for time.monotonic so timer behavior can be
tested without real waits. The detector fakes mimic the result objects
of pyzbar and zxing-cpp so backend conversion runs without either
library installed.
"""
from __future__ import annotations

from collections import namedtuple
from types import SimpleNamespace

import numpy as np

from scanoverlay.geometry import FrameRect, Point, RawCode


class ManualClock:
    """Monotonic clock advanced by hand; optionally ticks on every read."""

    def __init__(self, start: float = 100.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


ZbarRect = namedtuple("ZbarRect", "left top width height")
ZbarPoint = namedtuple("ZbarPoint", "x y")


def zbar_result(data: bytes, rect, polygon=(), kind: str = "QRCODE"):
    return SimpleNamespace(data=data, rect=ZbarRect(*rect), polygon=list(polygon), type=kind)


class FakePyzbar:
    """Mimics the ``pyzbar.pyzbar`` module."""

    ZBarSymbol = SimpleNamespace(QRCODE="QRCODE", EAN13="EAN13")

    def __init__(self, results):
        self.results = results
        self.calls = []

    def decode(self, image, symbols=None):
        self.calls.append((image.shape, symbols))
        return list(self.results)


def zxing_result(text: str, corners, fmt: str = "QRCode"):
    tl, tr, br, bl = (SimpleNamespace(x=x, y=y) for x, y in corners)
    position = SimpleNamespace(top_left=tl, top_right=tr, bottom_right=br, bottom_left=bl)
    return SimpleNamespace(text=text, position=position, format=SimpleNamespace(name=fmt))


class FakeZxing:
    """Mimics the ``zxingcpp`` module."""

    def __init__(self, results):
        self.results = results
        self.formats = None

    def read_barcodes(self, image, formats=None):
        self.formats = formats
        return list(self.results)


class FakeQRCodeDetector:
    """Mimics cv2.QRCodeDetector with canned multi/single results."""

    def __init__(self, multi=None, single=None):
        self.multi = multi or (False, (), None, None)
        self.single = single or ("", None, None)

    def detectAndDecodeMulti(self, frame):
        return self.multi

    def detectAndDecode(self, frame):
        return self.single


def blank_frame(width: int = 640, height: int = 480):
    return np.zeros((height, width, 3), dtype=np.uint8)


def make_code(value="hello", x=100.0, y=50.0, width=40.0, height=20.0, corners=None):
    if corners is None:
        corners = [(x, y), (x + width, y), (x + width, y + height), (x, y + height)]
    return RawCode(
        value=value,
        frame_rect=FrameRect(x, y, width, height),
        corners=[Point(cx, cy) for cx, cy in corners],
    )
