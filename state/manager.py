import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from detectors.proximity import contains
from state.schema import AlertState, CycleResult, Frame

logger = logging.getLogger(__name__)


class AlertStateMachine:
    """
    Turns per-cycle detections into a debounced hand-near-mouth alert.

    Inactive → Active only on a false → true proximity edge; `on_activate`
    is called exactly once per such edge with the frame that caused it.
    Active → Inactive as soon as the cycle has no region, no fingertips,
    no fingertip inside the region, or the last face observation is older
    than `staleness_timeout`.

    Staleness: once the face is gone the hand stage is skipped, so stale
    hand data must never keep an alert alive. The timeout is checked at
    the top of every evaluation, not by a background timer.

    evaluate() returns the new AlertState only when `active` changes.
    None = no change, so listeners are not notified on re-evaluation.
    """

    def __init__(
        self,
        staleness_timeout: float = 10.0,
        on_activate: Optional[Callable[[Frame], object]] = None,
        clock=time.monotonic,
    ):
        self.staleness_timeout = staleness_timeout
        self._on_activate = on_activate
        self._clock = clock
        self._state = AlertState()

    def evaluate(self, cycle: CycleResult, now: Optional[float] = None) -> Optional[AlertState]:
        now = self._clock() if now is None else now

        stale = self._check_staleness(cycle.face_seen_at, now)
        near  = (
            not stale
            and cycle.region is not None
            and bool(cycle.fingertips)
            and contains(cycle.region, cycle.fingertips.points)
        )

        if near == self._state.active:
            return None

        self._state = AlertState(
            active=near,
            last_transition_at=now,
            stale_face_since=self._state.stale_face_since,
        )

        if near:
            logger.info("Hand near mouth — alert raised (frame %d)", cycle.frame.frame_number)
            self._fire_activation(cycle.frame)
        else:
            logger.info("Alert cleared (%s)", self._clear_reason(cycle, stale))

        return self._state

    def reset(self) -> Optional[AlertState]:
        """Force the alert off, e.g. when the camera stops."""
        if not self._state.active:
            return None
        self._state = AlertState(active=False, last_transition_at=self._clock())
        return self._state

    def _check_staleness(self, face_seen_at: Optional[float], now: float) -> bool:
        if face_seen_at is None:
            return False

        stale = now - face_seen_at > self.staleness_timeout
        if stale and self._state.stale_face_since is None:
            logger.info("No face for %.1fs — tracking is stale.", now - face_seen_at)
            self._state = replace(self._state, stale_face_since=now)
        elif not stale and self._state.stale_face_since is not None:
            self._state = replace(self._state, stale_face_since=None)
        return stale

    def _fire_activation(self, frame: Frame) -> None:
        if self._on_activate is None:
            return
        try:
            self._on_activate(frame)
        except Exception as e:
            logger.error("Activation handler failed: %s", e)

    @staticmethod
    def _clear_reason(cycle: CycleResult, stale: bool) -> str:
        if stale:
            return "face tracking stale"
        if cycle.region is None:
            return "no face"
        if not cycle.fingertips:
            return "no fingertips"
        return "fingertips outside mouth region"

    @property
    def is_active(self) -> bool:
        return self._state.active

    @property
    def current_state(self) -> AlertState:
        return self._state
