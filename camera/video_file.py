import logging
import time
from pathlib import Path
from typing import Optional

import cv2

from camera.camera_base import CameraSource
from state.schema import Frame

logger = logging.getLogger(__name__)


class VideoFileSource(CameraSource):
    """
    Replays a recorded clip as if it were a live camera.

    With `realtime=True` reads are paced to the clip's own frame rate, so
    the scheduler's wall-clock gate behaves the same as with a webcam.
    Returns None once the clip is exhausted (unless `loop` is set).
    """

    is_live = False

    def __init__(self, path: str, realtime: bool = True, loop: bool = False):
        super().__init__()
        self.path = Path(path)
        self.realtime = realtime
        self.loop = loop
        self._cap: cv2.VideoCapture | None = None
        self._frame_period = 0.0
        self._last_read_at = 0.0

    def start(self) -> None:
        if not self.path.exists():
            raise FileNotFoundError(f"Video file not found: {self.path}")
        self._cap = cv2.VideoCapture(str(self.path))
        if not self._cap.isOpened():
            raise RuntimeError(f"Could not open video file {self.path}")
        fps = self._cap.get(cv2.CAP_PROP_FPS) or 30.0
        self._frame_period = 1.0 / fps
        logger.info("Replaying %s @ %.1ffps", self.path.name, fps)

    def read(self) -> Optional[Frame]:
        if self._cap is None:
            raise RuntimeError("Camera not started. Call start() first.")

        if self.realtime:
            wait = self._last_read_at + self._frame_period - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._last_read_at = time.monotonic()

        success, image = self._cap.read()
        if not success and self.loop:
            self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            success, image = self._cap.read()
        if not success or image is None:
            return None
        return self._stamp(image)

    def stop(self) -> None:
        if self._cap:
            self._cap.release()
            self._cap = None
            logger.info("Video replay stopped.")
