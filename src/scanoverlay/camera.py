"""Camera capture configuration and initialization."""

import logging

import cv2

logger = logging.getLogger(__name__)


def open_camera(
    index: int, preferred_width: int, preferred_height: int, fps: int = 30
) -> cv2.VideoCapture:
    """
    Open and configure a camera device for live code scanning.

    Args:
        index: Camera device index (0 for default webcam)
        preferred_width: Desired frame width (0 = auto-select max)
        preferred_height: Desired frame height (0 = auto-select max)
        fps: Requested capture rate

    Returns:
        Configured VideoCapture object ready for threaded reading

    Raises:
        RuntimeError: if the device cannot be opened
    """
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        raise RuntimeError(f"Failed to open camera index {index}")

    # MJPG keeps USB 2.0 webcams at full frame rate at high resolutions.
    cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*"MJPG"))

    if preferred_width and preferred_height:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, preferred_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, preferred_height)
    else:
        # Ask for a very large size so the driver picks the highest available.
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 10000)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 10000)

    cap.set(cv2.CAP_PROP_FPS, fps)
    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
    logger.info(
        "Camera %d opened at %dx%d",
        index,
        int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
        int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
    )
    return cap


def to_portrait(frame):
    """
    Rotate a sensor frame 90° clockwise into the portrait preview orientation.

    Detection and the preview both run on the rotated image; the sensor's
    width axis then runs along the display's vertical axis.
    """
    return cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
