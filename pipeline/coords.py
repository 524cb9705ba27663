"""
Coordinate-space helpers.

Detectors report normalized points with a bottom-left origin. A display
surface, when attached, expects top-left-origin normalized points and maps
them into its own space. Within one cycle either everything is mapped or
nothing is: `CoordinateMapper` binds to the surface once and applies the
same transform to the region and to every tip.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from state.schema import CoordinateSpace, Fingertip, FingertipObservation, Point, Rect


class DisplaySurface(ABC):
    """Anything that can place a capture-device point on screen."""

    @abstractmethod
    def device_space_to_display_space(self, point: Point) -> Point:
        """Map a top-left-origin normalized point into display coordinates."""
        ...


def bounding_rect(points: Iterable[Point]) -> Optional[Rect]:
    points = list(points)
    if not points:
        return None
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def rect_from_corners(a: Point, b: Point) -> Rect:
    return Rect(min(a.x, b.x), min(a.y, b.y), abs(b.x - a.x), abs(b.y - a.y))


def flip_vertical(point: Point) -> Point:
    return Point(point.x, 1.0 - point.y)


class CoordinateMapper:
    """Applies one cycle's coordinate transform."""

    def __init__(self, surface: Optional[DisplaySurface] = None):
        self._surface = surface

    @property
    def space(self) -> CoordinateSpace:
        return CoordinateSpace.RAW if self._surface is None else CoordinateSpace.DISPLAY

    def map_point(self, point: Point) -> Point:
        if self._surface is None:
            return point
        return self._surface.device_space_to_display_space(flip_vertical(point))

    def map_region(self, region: Optional[Rect]) -> Optional[Rect]:
        if region is None or self._surface is None:
            return region
        # Top-left in detector space is (min_x, max_y); the flip sends it to the top.
        top_left     = self.map_point(Point(region.min_x, region.max_y))
        bottom_right = self.map_point(Point(region.max_x, region.min_y))
        return rect_from_corners(top_left, bottom_right)

    def map_fingertips(self, observation: FingertipObservation) -> FingertipObservation:
        if self._surface is None:
            return observation
        return FingertipObservation(tips=tuple(
            Fingertip(tip.digit, self.map_point(tip.point), tip.confidence)
            for tip in observation.tips
        ))
