import numpy as np
import mediapipe as mp
from pathlib import Path
from typing import Optional

from detectors.detector_base import DetectorError, FaceLandmarks, LandmarkDetector, to_detector_point
from state.schema import Frame

BaseOptions           = mp.tasks.BaseOptions
FaceLandmarker        = mp.tasks.vision.FaceLandmarker
FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
VisionRunningMode     = mp.tasks.vision.RunningMode

FACE_MODEL_PATH = Path(__file__).parent.parent / "models" / "face_landmarker.task"

# Face-mesh indices of the outer lip contour, clockwise from the left corner
OUTER_LIPS = (
    61, 146, 91, 181, 84, 17, 314, 405, 321, 375,
    291, 409, 270, 269, 267, 0, 37, 39, 40, 185,
)


class FaceLandmarkDetector(LandmarkDetector):
    """
    Finds the primary face and returns its outer-lip contour.

    Only the lip landmarks are handed on; the orchestrator turns them into
    the target rectangle. Returns None when no face is in the frame.
    """

    def __init__(self, min_detection_confidence: float = 0.5, model_path: Path = FACE_MODEL_PATH):
        if not model_path.exists():
            raise FileNotFoundError(
                f"Model not found: {model_path}\n"
                "Run: uv run python -m utils.download_models"
            )

        self._landmarker = FaceLandmarker.create_from_options(
            FaceLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(model_path)),
                running_mode=VisionRunningMode.IMAGE,
                num_faces=1,
                min_face_detection_confidence=min_detection_confidence,
                min_face_presence_confidence=min_detection_confidence,
            )
        )

    def detect(self, frame: Frame) -> Optional[FaceLandmarks]:
        rgb = np.ascontiguousarray(frame.image[:, :, ::-1])  # BGR → RGB
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self._landmarker.detect(mp_image)
        except RuntimeError as e:
            raise DetectorError(f"face landmarker failed: {e}") from e

        if not result.face_landmarks:
            return None

        landmarks = result.face_landmarks[0]
        return FaceLandmarks(lip_contour=tuple(to_detector_point(landmarks[i]) for i in OUTER_LIPS))

    def release(self) -> None:
        self._landmarker.close()
