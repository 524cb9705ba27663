"""
Download the MediaPipe model files trackhands needs.

Run once before starting the app:
    uv run python -m utils.download_models
"""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

MODELS_DIR = Path(__file__).parent.parent / "models"

MODELS = {
    "face_landmarker.task": (
        "https://storage.googleapis.com/mediapipe-models/"
        "face_landmarker/face_landmarker/float16/1/face_landmarker.task"
    ),
    "hand_landmarker.task": (
        "https://storage.googleapis.com/mediapipe-models/"
        "hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task"
    ),
}


def download_models(models_dir: Path = MODELS_DIR) -> list[str]:
    """Fetch missing models. Returns the names that failed to download."""
    models_dir.mkdir(exist_ok=True)
    failed = []
    for filename, url in MODELS.items():
        dest = models_dir / filename
        if dest.exists():
            logger.info("[skip] %s already exists", filename)
            continue
        logger.info("[download] %s ...", filename)
        result = subprocess.run(
            ["curl", "-fL", "-o", str(dest), url],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            logger.error("Failed to download %s:\n%s", filename, result.stderr)
            dest.unlink(missing_ok=True)  # remove partial file
            failed.append(filename)
        else:
            logger.info("[done] %s saved to %s", filename, dest)
    return failed


if __name__ == "__main__":
    from utils.logging_setup import setup_logging

    setup_logging()
    if download_models():
        raise SystemExit(1)
    logger.info("All models ready.")
