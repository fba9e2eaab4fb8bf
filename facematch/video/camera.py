from __future__ import annotations

from typing import Callable, Optional, Tuple, Union

import cv2
import numpy as np

from facematch.errors import CameraError
from facematch.utils.log import get_logger

logger = get_logger(__name__)


def parse_source(source: Union[str, int]) -> Union[str, int]:
    """'0' -> camera index 0; anything else stays a path/URL."""
    if isinstance(source, int):
        return source
    text = str(source).strip()
    return int(text) if text.isdigit() else text


class CameraAcquirer:
    """Video-only capture bound to the session's video surface.

    `open()` never raises: a denied or absent device is logged and the surface stays empty.
    """

    def __init__(
        self,
        source: Union[str, int] = 0,
        frame_size: Optional[Tuple[int, int]] = None,
        capture_factory: Callable = cv2.VideoCapture,
    ):
        self.source = parse_source(source)
        self.frame_size = frame_size
        self._capture_factory = capture_factory
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def _open_capture(self):
        cap = self._capture_factory(self.source)
        if cap is None or not cap.isOpened():
            if cap is not None:
                cap.release()
            raise CameraError(f"Cannot open source: {self.source}")
        if self.frame_size is not None:
            w, h = self.frame_size
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(w))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(h))
        return cap

    def open(self) -> bool:
        if self._cap is not None:
            return True
        try:
            self._cap = self._open_capture()
        except Exception as e:
            logger.error(f"❌ Error accessing webcam: {e}")
            self._cap = None
            return False
        logger.info(f"Camera opened: {self.source}")
        return True

    def read(self) -> Optional[np.ndarray]:
        """Next BGR frame, or None when closed or the stream ended."""
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        if self._cap is None:
            return
        try:
            self._cap.release()
        finally:
            self._cap = None
            logger.info("Camera released")
