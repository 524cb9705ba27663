"""
Shared fakes: a controllable clock, scripted detectors and frame builders.
"""

import numpy as np
import pytest

from detectors.detector_base import FaceLandmarks, HandPose, LandmarkDetector
from pipeline.coords import DisplaySurface
from state.schema import Digit, Frame, Point


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedDetector(LandmarkDetector):
    """
    Returns queued outputs in order, repeating the last one when the
    script runs out. Exceptions in the script are raised instead.
    """

    def __init__(self, *outputs):
        self._script = list(outputs)
        self._current = None
        self.calls = 0
        self.released = False

    def push(self, *outputs) -> None:
        self._script.extend(outputs)

    def detect(self, frame):
        self.calls += 1
        if self._script:
            self._current = self._script.pop(0)
        if isinstance(self._current, Exception):
            raise self._current
        return self._current

    def release(self) -> None:
        self.released = True


def make_frame(number: int = 1, timestamp: float = 0.0, width: int = 64, height: int = 48) -> Frame:
    image = np.full((height, width, 3), number % 255, dtype=np.uint8)
    return Frame(image=image, timestamp=timestamp, frame_number=number)


def lips(x: float, y: float, w: float, h: float) -> FaceLandmarks:
    """A lip contour whose bounding box is exactly (x, y, w, h)."""
    return FaceLandmarks(lip_contour=(
        Point(x, y + h / 2),
        Point(x + w / 2, y),
        Point(x + w, y + h / 2),
        Point(x + w / 2, y + h),
    ))


def hand(*points, confidence: float = 0.9) -> HandPose:
    """Tips assigned to digits in order (thumb first)."""
    digits = list(Digit)
    return HandPose(joints={digits[i]: (Point(*p), confidence) for i, p in enumerate(points)})


class ScaleSurface(DisplaySurface):
    """Display surface that scales normalized points to a width x height canvas."""

    def __init__(self, width: float = 100.0, height: float = 50.0):
        self.width = width
        self.height = height
        self.calls = []

    def device_space_to_display_space(self, point: Point) -> Point:
        self.calls.append(point)
        return Point(point.x * self.width, point.y * self.height)


@pytest.fixture
def clock():
    return FakeClock()
