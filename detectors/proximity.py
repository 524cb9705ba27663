from typing import Iterable, Optional

from state.schema import Point, Rect


def point_in_rect(rect: Rect, point: Point) -> bool:
    """Inclusive on every edge."""
    return rect.min_x <= point.x <= rect.max_x and rect.min_y <= point.y <= rect.max_y


def contains(region: Optional[Rect], points: Iterable[Point]) -> bool:
    """
    Hand-near-target test.

    True iff a region is present and at least one point lies inside it.
    No region, or no points, is always False. Pure: no state, no side effects.
    """
    if region is None:
        return False
    return any(point_in_rect(region, p) for p in points)
