from detectors.detector_base import LandmarkDetector, DetectorError, FaceLandmarks, HandPose
from detectors.proximity     import contains

# The MediaPipe-backed detectors live in detectors.face / detectors.hands and
# are imported explicitly so the pipeline can run against other detectors
# without loading MediaPipe.
__all__ = ["LandmarkDetector", "DetectorError", "FaceLandmarks", "HandPose", "contains"]
