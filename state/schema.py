from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np


class Digit(str, Enum):
    THUMB  = "thumb"
    INDEX  = "index"
    MIDDLE = "middle"
    RING   = "ring"
    LITTLE = "little"


class CoordinateSpace(str, Enum):
    RAW     = "raw"      # normalized detector space, bottom-left origin
    DISPLAY = "display"  # whatever the attached display surface maps into


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height


@dataclass(frozen=True, eq=False)
class Frame:
    """One captured image with its capture time (monotonic seconds)."""
    image: np.ndarray
    timestamp: float
    frame_number: int = 0

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]


@dataclass(frozen=True)
class Fingertip:
    digit: Digit
    point: Point
    confidence: float


@dataclass(frozen=True)
class FingertipObservation:
    """Confidence-filtered tip points of the tracked hand for one cycle."""
    tips: tuple = ()

    @property
    def points(self) -> list[Point]:
        return [tip.point for tip in self.tips]

    def __len__(self) -> int:
        return len(self.tips)

    def __bool__(self) -> bool:
        return bool(self.tips)


@dataclass(frozen=True)
class AlertState:
    active: bool = False
    last_transition_at: Optional[float] = None
    stale_face_since: Optional[float] = None


@dataclass(frozen=True, eq=False)
class EvidenceSnapshot:
    image: np.ndarray
    timestamp: float
    frame_number: int


@dataclass(frozen=True, eq=False)
class CycleResult:
    """Everything one detection cycle produced, in a single coordinate space."""
    sequence: int
    frame: Frame
    region: Optional[Rect] = None
    fingertips: FingertipObservation = field(default_factory=FingertipObservation)
    space: CoordinateSpace = CoordinateSpace.RAW
    face_seen_at: Optional[float] = None
    started_at: float = 0.0
    hand_stage_ran: bool = False

    def __repr__(self):
        return (
            f"CycleResult("
            f"seq={self.sequence}, "
            f"region={self.region}, "
            f"tips={len(self.fingertips)}, "
            f"space={self.space.value})"
        )
