import logging
from typing import Optional

import cv2

from camera.camera_base import CameraSource
from state.schema import Frame

logger = logging.getLogger(__name__)


class WebcamSource(CameraSource):
    """OpenCV webcam implementation. Frames are mirrored like a selfie preview."""

    def __init__(self, device_index: int = 0, width: int = 1280, height: int = 720, mirror: bool = True):
        super().__init__()
        self.device_index = device_index
        self.width = width
        self.height = height
        self.mirror = mirror
        self._cap: cv2.VideoCapture | None = None

    def start(self) -> None:
        self._cap = cv2.VideoCapture(self.device_index)
        if not self._cap.isOpened():
            raise RuntimeError(f"Could not open webcam at device index {self.device_index}")
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        # Keep the driver from buffering stale frames
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        logger.info("Webcam started — device %d @ %dx%d", self.device_index, self.width, self.height)

    def read(self) -> Optional[Frame]:
        if self._cap is None:
            raise RuntimeError("Camera not started. Call start() first.")
        success, image = self._cap.read()
        if not success or image is None:
            return None
        if self.mirror:
            image = image[:, ::-1, :].copy()  # copy for contiguous memory
        return self._stamp(image)

    def stop(self) -> None:
        if self._cap:
            self._cap.release()
            self._cap = None
            logger.info("Webcam stopped.")
