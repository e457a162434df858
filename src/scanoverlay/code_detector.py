import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2

from .geometry import DetectionFrame, FrameRect, FrameSize, Point, RawCode

logger = logging.getLogger(__name__)

DEFAULT_CODE_TYPES = ("qr", "ean-13")

# Scanner code type -> (pyzbar ZBarSymbol name, zxingcpp BarcodeFormat name)
_CODE_TYPES = {
    "qr": ("QRCODE", "QRCode"),
    "ean-13": ("EAN13", "EAN13"),
    "ean-8": ("EAN8", "EAN8"),
    "upc-a": ("UPCA", "UPCA"),
    "upc-e": ("UPCE", "UPCE"),
    "code-128": ("CODE128", "Code128"),
    "code-39": ("CODE39", "Code39"),
}

_PYZBAR_TYPES = {zbar: name for name, (zbar, _) in _CODE_TYPES.items()}
_ZXING_TYPES = {zxing: name for name, (_, zxing) in _CODE_TYPES.items()}


def _bounding_rect(points: Sequence[Point]) -> FrameRect:
    if not points:
        return FrameRect(0.0, 0.0, 0.0, 0.0)
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return FrameRect(
        x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys)
    )


def _make_code(
    value: Optional[str],
    quad: Iterable[Tuple[float, float]],
    code_type: Optional[str],
    rect: Optional[FrameRect] = None,
) -> RawCode:
    corners = [Point(float(x), float(y)) for x, y in quad]
    return RawCode(
        value=value or None,
        frame_rect=rect if rect is not None else _bounding_rect(corners),
        corners=corners,
        code_type=code_type,
    )


class CodeDetector:
    def __init__(
        self, backend: str = "opencv", code_types: Sequence[str] = DEFAULT_CODE_TYPES
    ):
        if not code_types:
            raise ValueError("At least one code type is required")
        unknown = [t for t in code_types if t not in _CODE_TYPES]
        if unknown:
            raise ValueError(f"Unsupported code types: {', '.join(unknown)}")
        self.backend = backend
        self.code_types = tuple(code_types)
        self._opencv = None
        self._pyzbar = None
        self._pyzbar_symbols = None
        self._zxingcpp = None
        self._zxing_formats = None

        if backend == "pyzbar":
            try:
                from pyzbar import pyzbar  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "pyzbar is not installed; install it or use backend=opencv"
                ) from exc
            self._pyzbar = pyzbar
            self._pyzbar_symbols = [
                getattr(pyzbar.ZBarSymbol, _CODE_TYPES[t][0]) for t in self.code_types
            ]
        elif backend == "zxingcpp":
            try:
                import zxingcpp  # type: ignore
            except ImportError as exc:
                raise RuntimeError(
                    "zxing-cpp is not installed; pip install zxing-cpp"
                ) from exc
            self._zxingcpp = zxingcpp
            formats = [
                getattr(zxingcpp.BarcodeFormat, _CODE_TYPES[t][1])
                for t in self.code_types
            ]
            combined = formats[0]
            for fmt in formats[1:]:
                combined = combined | fmt
            self._zxing_formats = combined
        elif backend in ("opencv", "opencv_aruco"):
            if backend == "opencv_aruco":
                self._opencv = cv2.QRCodeDetectorAruco()
            else:
                self._opencv = cv2.QRCodeDetector()
            skipped = [t for t in self.code_types if t != "qr"]
            if skipped:
                logger.warning(
                    "Backend %s only decodes QR codes; ignoring %s",
                    backend,
                    ", ".join(skipped),
                )
        else:
            raise ValueError(f"Unknown detector backend: {backend}")

    def detect(self, frame) -> List[RawCode]:
        if self.backend == "pyzbar":
            return _detect_pyzbar(frame, self._pyzbar, self._pyzbar_symbols)
        if self.backend == "zxingcpp":
            return _detect_zxingcpp(frame, self._zxingcpp, self._zxing_formats)
        if "qr" not in self.code_types:
            return []
        return _detect_opencv(frame, self._opencv)

    def detect_frame(self, portrait) -> DetectionFrame:
        """
        Detect codes in a portrait preview image.

        Code geometry is in the portrait image's coordinates, while the
        reported size is the sensor-native one (the rotated image's width
        and height swapped).
        """
        height, width = portrait.shape[:2]
        return DetectionFrame(
            size=FrameSize(width=height, height=width), codes=self.detect(portrait)
        )


def _detect_opencv(frame, detector: cv2.QRCodeDetector) -> List[RawCode]:
    codes: List[RawCode] = []

    ok, decoded_info, points, _ = detector.detectAndDecodeMulti(frame)
    if ok and points is not None:
        # Empty text means the code was located but could not be decoded.
        for text, quad in zip(decoded_info, points):
            codes.append(_make_code(text, quad, "qr"))
        return codes
    try:
        result = detector.detectAndDecode(frame)
    except cv2.error:
        return codes
    if len(result) == 3:
        text, points, _ = result
    else:
        text, points = result
    if points is not None:
        codes.append(_make_code(text, points[0], "qr"))

    return codes


def _detect_pyzbar(frame, pyzbar, symbols) -> List[RawCode]:
    codes: List[RawCode] = []
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY) if frame.ndim == 3 else frame
    for obj in pyzbar.decode(gray, symbols=symbols):
        text = obj.data.decode("utf-8", errors="replace")
        rect = obj.rect
        frame_rect = FrameRect(
            float(rect.left), float(rect.top), float(rect.width), float(rect.height)
        )
        points = obj.polygon or []
        if points:
            quad = [(p.x, p.y) for p in points]
        else:
            quad = [
                (rect.left, rect.top),
                (rect.left + rect.width, rect.top),
                (rect.left + rect.width, rect.top + rect.height),
                (rect.left, rect.top + rect.height),
            ]
        code_type = _PYZBAR_TYPES.get(str(obj.type))
        codes.append(_make_code(text, quad, code_type, frame_rect))
    return codes


def _detect_zxingcpp(frame, zxingcpp, formats) -> List[RawCode]:
    codes: List[RawCode] = []
    for result in zxingcpp.read_barcodes(frame, formats=formats):
        pos = result.position
        quad = [
            (pos.top_left.x, pos.top_left.y),
            (pos.top_right.x, pos.top_right.y),
            (pos.bottom_right.x, pos.bottom_right.y),
            (pos.bottom_left.x, pos.bottom_left.y),
        ]
        code_type = _ZXING_TYPES.get(getattr(result.format, "name", ""))
        codes.append(_make_code(result.text, quad, code_type))
    return codes
