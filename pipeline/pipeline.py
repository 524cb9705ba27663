"""
Detection pipeline: scheduler -> orchestrator -> alert state -> evidence.

Two threads are involved. The producer (camera loop) calls submit() for
every frame; admitted frames go to a single background worker that runs
the detection cycle. Finished cycles wait in an outbox until the consumer
calls publish_pending(), which is the only place published state changes
and listeners are notified. The in-flight slot is released there too, so
a new frame is never admitted before the previous result is visible.

    with DetectionPipeline(face, hands) as pipeline:
        while True:
            pipeline.submit(camera.read())
            pipeline.publish_pending()
"""

import logging
import queue
import threading
import time
from typing import Optional

from detectors.detector_base import LandmarkDetector
from pipeline.config import PipelineConfig
from pipeline.coords import DisplaySurface
from pipeline.events import EventBus, Events
from pipeline.evidence import EvidenceCapture
from pipeline.orchestrator import DetectionOrchestrator
from pipeline.scheduler import FrameScheduler
from state.manager import AlertStateMachine
from state.schema import AlertState, CycleResult, EvidenceSnapshot, FingertipObservation, Frame, Rect

logger = logging.getLogger(__name__)

_STOP = object()


class DetectionPipeline:
    """Constructed pipeline with injected detectors, display surface and clock."""

    def __init__(
        self,
        face_detector: LandmarkDetector,
        hand_detector: LandmarkDetector,
        display: Optional[DisplaySurface] = None,
        config: Optional[PipelineConfig] = None,
        clock=time.monotonic,
        bus: Optional[EventBus] = None,
    ):
        self.config = config or PipelineConfig()
        self.bus    = bus or EventBus()
        self._clock = clock

        self.scheduler = FrameScheduler(
            interval=self.config.check_interval,
            stride=self.config.frame_stride,
            clock=clock,
        )
        self.orchestrator = DetectionOrchestrator(
            face_detector,
            hand_detector,
            display=display,
            min_tip_confidence=self.config.min_tip_confidence,
            clock=clock,
        )
        self.evidence = EvidenceCapture(scale=self.config.evidence_scale)
        self.alerts = AlertStateMachine(
            staleness_timeout=self.config.staleness_timeout,
            on_activate=self._capture_evidence,
            clock=clock,
        )

        self._inbox: queue.Queue = queue.Queue(maxsize=1)
        self._outbox: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._last_sequence = 0

        # Published state, written only by publish_pending()
        self.target_region: Optional[Rect] = None
        self.fingertips = FingertipObservation()
        self.last_result: Optional[CycleResult] = None
        self.current_frame: Optional[Frame] = None

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        if not self.config.threaded or self.is_running:
            return
        self._worker = threading.Thread(target=self._worker_loop, name="detection-worker", daemon=True)
        self._worker.start()
        logger.info("Detection worker started (check every %.1fs, stride %d)",
                    self.scheduler.interval, self.config.frame_stride)

    def stop(self) -> None:
        """Let the in-flight cycle finish, publish it, then drop the alert."""
        if self._worker is not None:
            self._inbox.put(_STOP)
            self._worker.join()
            self._worker = None
            logger.info("Detection worker stopped.")
        self.publish_pending()

        state = self.alerts.reset()
        if state is not None:
            self.bus.emit(Events.ALERT_CHANGED, state=state)

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    # ── Producer side ────────────────────────────────────────────────────

    def submit(self, frame: Optional[Frame]) -> bool:
        """Offer a frame. Returns True if it was admitted for detection."""
        if frame is None:
            return False
        if self.config.threaded and not self.is_running:
            raise RuntimeError("Pipeline not started. Call start() first.")
        if not self.scheduler.admit(frame):
            return False

        if self.config.threaded:
            self._inbox.put_nowait(frame)
        else:
            self._outbox.put(self._run_cycle(frame))
        return True

    def _worker_loop(self) -> None:
        while True:
            frame = self._inbox.get()
            if frame is _STOP:
                return
            self._outbox.put(self._run_cycle(frame))

    def _run_cycle(self, frame: Frame) -> Optional[CycleResult]:
        try:
            return self.orchestrator.run_cycle(frame)
        except Exception:
            # The in-flight slot must still be released by the publish step
            logger.exception("Detection cycle crashed on frame %d", frame.frame_number)
            return None

    # ── Consumer side ────────────────────────────────────────────────────

    def publish_pending(self) -> int:
        """Apply finished cycles and notify listeners. Returns how many were applied."""
        applied = 0
        while True:
            try:
                result = self._outbox.get_nowait()
            except queue.Empty:
                return applied
            if result is not None and self._apply(result):
                applied += 1
            self.scheduler.complete()

    def _apply(self, result: CycleResult) -> bool:
        if result.sequence <= self._last_sequence:
            logger.debug("Dropping out-of-order cycle %d", result.sequence)
            return False
        self._last_sequence = result.sequence

        if result.region != self.target_region:
            self.target_region = result.region
            self.bus.emit(Events.REGION_CHANGED, region=result.region)
        self.fingertips    = result.fingertips
        self.last_result   = result
        self.current_frame = result.frame

        state = self.alerts.evaluate(result, now=result.started_at)
        if state is not None:
            self.bus.emit(Events.ALERT_CHANGED, state=state)

        self.bus.emit(Events.CYCLE_COMPLETED, result=result)
        return True

    def _capture_evidence(self, frame: Frame) -> None:
        snapshot = self.evidence.capture(frame)
        if snapshot is not None:
            self.bus.emit(Events.EVIDENCE_CAPTURED, snapshot=snapshot)

    # ── Runtime configuration ────────────────────────────────────────────

    def set_check_interval(self, seconds: float) -> None:
        self.scheduler.interval = seconds
        self.config.check_interval = self.scheduler.interval

    def attach_display(self, surface: DisplaySurface) -> None:
        """Map coordinates into `surface` from the next cycle on."""
        self.orchestrator.display = surface

    def detach_display(self) -> None:
        self.orchestrator.display = None

    # ── Published state ──────────────────────────────────────────────────

    @property
    def alert_state(self) -> AlertState:
        return self.alerts.current_state

    @property
    def is_alert_active(self) -> bool:
        return self.alerts.is_active

    @property
    def latest_snapshot(self) -> Optional[EvidenceSnapshot]:
        return self.evidence.latest
