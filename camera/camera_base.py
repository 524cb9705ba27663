import time
from abc import ABC, abstractmethod
from typing import Optional

from state.schema import Frame


class CameraSource(ABC):
    """Abstract base class for all frame sources."""

    # False for sources that run out (recordings); None from read() then means "done"
    is_live = True

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._frame_number = 0

    @abstractmethod
    def start(self) -> None:
        """Initialize and start the camera."""
        ...

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """
        Read the next frame.
        Returns a timestamped BGR Frame, or None when no frame was available.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Release camera resources."""
        ...

    def _stamp(self, image) -> Frame:
        self._frame_number += 1
        return Frame(image=image, timestamp=self._clock(), frame_number=self._frame_number)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
