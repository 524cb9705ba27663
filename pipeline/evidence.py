import logging
from typing import Optional

import cv2

from state.schema import EvidenceSnapshot, Frame

logger = logging.getLogger(__name__)


class EvidenceCapture:
    """
    Keeps a downscaled copy of the frame that raised the latest alert.

    Only one snapshot is ever held; each capture overwrites the last.
    A failed capture is logged and leaves the previous snapshot alone.
    """

    def __init__(self, scale: float = 0.5):
        self.scale = scale
        self._latest: Optional[EvidenceSnapshot] = None

    @property
    def latest(self) -> Optional[EvidenceSnapshot]:
        return self._latest

    def capture(self, frame: Frame) -> Optional[EvidenceSnapshot]:
        try:
            h, w = frame.image.shape[:2]
            size = (max(1, int(w * self.scale)), max(1, int(h * self.scale)))
            image = cv2.resize(frame.image, size, interpolation=cv2.INTER_AREA)
        except (cv2.error, AttributeError, ValueError, TypeError) as e:
            logger.warning("Evidence capture failed for frame %d: %s", frame.frame_number, e)
            return None

        self._latest = EvidenceSnapshot(image=image, timestamp=frame.timestamp, frame_number=frame.frame_number)
        logger.info("Evidence captured from frame %d (%dx%d)", frame.frame_number, size[0], size[1])
        return self._latest

    def clear(self) -> None:
        self._latest = None
