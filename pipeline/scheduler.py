import logging
import math
import threading
import time

from pipeline.config import MIN_CHECK_INTERVAL
from state.schema import Frame

logger = logging.getLogger(__name__)


class FrameScheduler:
    """
    Decides which incoming frames get detection work.

    A frame is admitted only when all three hold:
      1. no detection cycle is in flight
      2. the periodic gate has fired since the last admission
      3. the stride counter has run down (every Nth eligible frame)

    The gate behaves like a repeating timer started at construction:
    it fires every `interval` seconds, and ticks missed while the gate
    was already open collapse into one. Rejected frames are dropped,
    never queued, so the newest sampled frame always wins.
    """

    def __init__(self, interval: float = 2.0, stride: int = 2, clock=time.monotonic):
        self._clock     = clock
        self._lock      = threading.Lock()
        self._stride    = max(1, stride)
        self._countdown = self._stride
        self._in_flight = False
        self._gate_open = False
        self._interval  = max(MIN_CHECK_INTERVAL, interval)
        self._next_tick = self._clock() + self._interval

        self.admitted_count = 0
        self.rejected_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, seconds: float) -> None:
        """Reconfigure the gate. The next tick is rescheduled from now."""
        with self._lock:
            self._interval  = max(MIN_CHECK_INTERVAL, seconds)
            self._next_tick = self._clock() + self._interval
        logger.info("Check interval set to %.1fs", self._interval)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def admit(self, frame: Frame) -> bool:
        with self._lock:
            self._poll_timer()

            if self._in_flight or not self._gate_open:
                self.rejected_count += 1
                return False

            self._countdown -= 1
            if self._countdown > 0:
                self.rejected_count += 1
                return False

            self._countdown = self._stride
            self._gate_open = False
            self._in_flight = True
            self.admitted_count += 1

        logger.debug("Admitted frame %d for detection", frame.frame_number)
        return True

    def complete(self) -> None:
        """Mark the in-flight cycle as resolved."""
        with self._lock:
            self._in_flight = False

    def _poll_timer(self) -> None:
        now = self._clock()
        if now < self._next_tick:
            return
        self._gate_open = True
        missed = math.floor((now - self._next_tick) / self._interval) + 1
        self._next_tick += missed * self._interval
