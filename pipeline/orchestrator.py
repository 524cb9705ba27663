import itertools
import logging
import time
from dataclasses import dataclass
from typing import Optional

from detectors.detector_base import FaceLandmarks, HandPose, LandmarkDetector
from pipeline.coords import CoordinateMapper, DisplaySurface, bounding_rect
from state.schema import CycleResult, Fingertip, FingertipObservation, Frame, Rect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceStageOutput:
    region: Rect  # raw detector space


class DetectionOrchestrator:
    """
    Runs one detection cycle: face, then hand, then normalization.

    Stages run strictly in order and each returns an optional output
    consumed by the next:

        face stage   -> FaceStageOutput | None
        hand stage   -> FingertipObservation   (skipped without a face)
        normalize    -> CycleResult

    A detector that raises or finds nothing yields an empty stage output;
    nothing escapes run_cycle().
    """

    def __init__(
        self,
        face_detector: LandmarkDetector,
        hand_detector: LandmarkDetector,
        display: Optional[DisplaySurface] = None,
        min_tip_confidence: float = 0.3,
        clock=time.monotonic,
    ):
        self._face_detector      = face_detector
        self._hand_detector      = hand_detector
        self._display            = display
        self._min_tip_confidence = min_tip_confidence
        self._clock              = clock
        self._sequence           = itertools.count(1)

        self.current_frame: Optional[Frame] = None
        self.last_face_seen_at: Optional[float] = None

    @property
    def display(self) -> Optional[DisplaySurface]:
        return self._display

    @display.setter
    def display(self, surface: Optional[DisplaySurface]) -> None:
        self._display = surface

    def run_cycle(self, frame: Frame) -> CycleResult:
        started_at = self._clock()
        self.current_frame = frame
        # One surface per cycle, even if it is detached mid-cycle
        mapper = CoordinateMapper(self._display)

        face = self._face_stage(frame)
        if face is None:
            tips = FingertipObservation()
        else:
            tips = self._hand_stage(frame)

        return CycleResult(
            sequence=next(self._sequence),
            frame=frame,
            region=mapper.map_region(face.region if face else None),
            fingertips=mapper.map_fingertips(tips),
            space=mapper.space,
            face_seen_at=self.last_face_seen_at,
            started_at=started_at,
            hand_stage_ran=face is not None,
        )

    def _face_stage(self, frame: Frame) -> Optional[FaceStageOutput]:
        landmarks = self._invoke(self._face_detector, frame, "face")
        if not isinstance(landmarks, FaceLandmarks):
            return None

        region = bounding_rect(landmarks.lip_contour)
        if region is None:
            return None

        self.last_face_seen_at = self._clock()
        return FaceStageOutput(region=region)

    def _hand_stage(self, frame: Frame) -> FingertipObservation:
        pose = self._invoke(self._hand_detector, frame, "hand")
        if not isinstance(pose, HandPose):
            return FingertipObservation()

        tips = tuple(
            Fingertip(digit, point, confidence)
            for digit, (point, confidence) in pose.joints.items()
            if confidence > self._min_tip_confidence
        )
        return FingertipObservation(tips=tips)

    def _invoke(self, detector: LandmarkDetector, frame: Frame, stage: str):
        try:
            return detector.detect(frame)
        except Exception as e:
            logger.warning("%s detection failed on frame %d: %s", stage, frame.frame_number, e)
            return None
