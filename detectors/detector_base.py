from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from state.schema import Digit, Frame, Point


class DetectorError(Exception):
    """Raised by a detector when a single detect() call fails."""


@dataclass(frozen=True)
class FaceLandmarks:
    """Outer-lip contour of the primary face, raw normalized space."""
    lip_contour: tuple = ()


@dataclass(frozen=True)
class HandPose:
    """Tip joint of each digit group: Digit -> (Point, confidence)."""
    joints: dict = field(default_factory=dict)


class LandmarkDetector(ABC):
    """
    Base class for the landmark detectors the pipeline depends on.

    A detector maps one frame to zero-or-one structured result.
    Coordinates are normalized 0.0–1.0 with a bottom-left origin.
    Returns None when nothing was found; raises DetectorError on failure.
    """

    @abstractmethod
    def detect(self, frame: Frame) -> Optional[Any]:
        ...

    def release(self) -> None:
        """Optional cleanup hook (e.g. close MediaPipe sessions)."""
        pass


def to_detector_point(landmark) -> Point:
    """MediaPipe landmarks are top-left origin; detector space is bottom-left."""
    return Point(landmark.x, 1.0 - landmark.y)


def landmark_confidence(landmark, fallback: float) -> float:
    """Per-landmark presence when MediaPipe reports one, else `fallback`."""
    presence = getattr(landmark, "presence", None)
    return fallback if presence is None else presence
