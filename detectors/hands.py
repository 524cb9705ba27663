import numpy as np
import mediapipe as mp
from pathlib import Path
from typing import Optional

from detectors.detector_base import DetectorError, HandPose, LandmarkDetector, landmark_confidence, to_detector_point
from state.schema import Digit, Frame

BaseOptions           = mp.tasks.BaseOptions
HandLandmarker        = mp.tasks.vision.HandLandmarker
HandLandmarkerOptions = mp.tasks.vision.HandLandmarkerOptions
VisionRunningMode     = mp.tasks.vision.RunningMode

HAND_MODEL_PATH = Path(__file__).parent.parent / "models" / "hand_landmarker.task"

# Hand landmark index of the tip joint of each digit group
TIP_LANDMARKS = {
    Digit.THUMB:  4,
    Digit.INDEX:  8,
    Digit.MIDDLE: 12,
    Digit.RING:   16,
    Digit.LITTLE: 20,
}


class HandPoseDetector(LandmarkDetector):
    """
    Tracks a single hand and returns the tip joint of every digit group.

    MediaPipe does not reliably report a per-joint score for hands, so a
    tip falls back to the hand's handedness score when its own presence
    value is missing. Confidence filtering is left to the orchestrator.
    """

    def __init__(self, min_detection_confidence: float = 0.5, max_hands: int = 1,
                 model_path: Path = HAND_MODEL_PATH):
        if not model_path.exists():
            raise FileNotFoundError(
                f"Model not found: {model_path}\n"
                "Run: uv run python -m utils.download_models"
            )

        self._landmarker = HandLandmarker.create_from_options(
            HandLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(model_path)),
                running_mode=VisionRunningMode.IMAGE,
                num_hands=max_hands,
                min_hand_detection_confidence=min_detection_confidence,
                min_hand_presence_confidence=min_detection_confidence,
                min_tracking_confidence=min_detection_confidence,
            )
        )

    def detect(self, frame: Frame) -> Optional[HandPose]:
        rgb = np.ascontiguousarray(frame.image[:, :, ::-1])
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self._landmarker.detect(mp_image)
        except RuntimeError as e:
            raise DetectorError(f"hand landmarker failed: {e}") from e

        if not result.hand_landmarks:
            return None

        landmarks  = result.hand_landmarks[0]
        hand_score = result.handedness[0][0].score if result.handedness else 0.0

        joints = {}
        for digit, index in TIP_LANDMARKS.items():
            tip = landmarks[index]
            confidence = landmark_confidence(tip, hand_score)
            joints[digit] = (to_detector_point(tip), confidence)

        return HandPose(joints=joints)

    def release(self) -> None:
        self._landmarker.close()
