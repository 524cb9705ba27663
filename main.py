"""
trackhands — main entry point

Reads camera frames, feeds them to the detection pipeline, and raises an
alert (OSC + preview banner) whenever a fingertip enters the mouth region.

Usage:
    python main.py
    python main.py --config path/to/config.yaml

Preview keys:
    q      quit
    p      toggle the preview overlay (coordinates switch to preview pixels)
    + / -  lengthen / shorten the check interval by 0.5s
"""

import argparse
import logging

import cv2
import yaml

from camera.factory     import create_camera
from detectors.face     import FaceLandmarkDetector
from detectors.hands    import HandPoseDetector
from osc.sender         import OSCSender
from pipeline           import DetectionPipeline, DisplaySurface, Events, PipelineConfig
from state.schema       import CoordinateSpace, Point
from utils.logging_setup import setup_logging

logger = logging.getLogger("trackhands")

WINDOW_NAME = "trackhands preview"


def load_config(path: str = "config.yaml") -> dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


class PreviewSurface(DisplaySurface):
    """Maps top-left-origin normalized points to preview-window pixels."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height

    def device_space_to_display_space(self, point: Point) -> Point:
        return Point(point.x * self.width, point.y * self.height)


def draw_debug_overlay(frame, pipeline: DetectionPipeline) -> None:
    """Draw the mouth region, fingertips and alert state onto the preview frame."""
    result = pipeline.last_result
    if result is not None and result.space == CoordinateSpace.DISPLAY:
        region = pipeline.target_region
        if region is not None:
            cv2.rectangle(frame, (int(region.min_x), int(region.min_y)),
                          (int(region.max_x), int(region.max_y)), (0, 255, 0), 2)
        for tip in pipeline.fingertips.tips:
            cv2.circle(frame, (int(tip.point.x), int(tip.point.y)), 6, (255, 100, 0), -1)

    if pipeline.is_alert_active:
        h, w = frame.shape[:2]
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, 0), (w, h), (0, 0, 0), -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)
        cv2.putText(frame, "Stop biting!", (30, 80), cv2.FONT_HERSHEY_SIMPLEX,
                    2.0, (255, 255, 255), 4, cv2.LINE_AA)

        snapshot = pipeline.latest_snapshot
        if snapshot is not None:
            sh, sw = snapshot.image.shape[:2]
            sh, sw = min(sh, h - 110), min(sw, w - 30)
            if sh > 0 and sw > 0:
                frame[110:110 + sh, 30:30 + sw] = snapshot.image[:sh, :sw]

    lines = [
        f"alert:    {'ACTIVE' if pipeline.is_alert_active else 'clear'}",
        f"interval: {pipeline.scheduler.interval:.1f}s",
        f"tips:     {len(pipeline.fingertips)}",
    ]
    y = frame.shape[0] - 80
    for line in lines:
        cv2.putText(frame, line, (15, y), cv2.FONT_HERSHEY_SIMPLEX,
                    0.6, (0, 255, 0), 2, cv2.LINE_AA)
        y += 28


def main():
    parser = argparse.ArgumentParser(description="trackhands: warn when fingers reach the mouth")
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML")
    args = parser.parse_args()

    config = load_config(args.config)
    det_cfg   = config.get("detection", {})
    debug_cfg = config.get("debug", {})
    log_cfg   = config.get("logging", {})

    setup_logging(level=log_cfg.get("level", "INFO"), log_file=log_cfg.get("file"))

    show_preview = debug_cfg.get("show_preview", True)

    # ── Build components ────────────────────────────────────────────────────
    camera = create_camera(config)
    pipeline_cfg = PipelineConfig.from_dict(det_cfg)

    face_detector = FaceLandmarkDetector(
        min_detection_confidence=det_cfg.get("face", {}).get("min_detection_confidence", 0.5),
    )
    hand_detector = HandPoseDetector(
        min_detection_confidence=det_cfg.get("hands", {}).get("min_detection_confidence", 0.5),
        max_hands=pipeline_cfg.max_hands,
    )

    pipeline = DetectionPipeline(face_detector, hand_detector, config=pipeline_cfg)

    osc_cfg = config.get("osc", {})
    osc = None
    if osc_cfg.get("enabled", True):
        osc = OSCSender(
            host=osc_cfg.get("host", "127.0.0.1"),
            port=osc_cfg.get("port", 7000),
        )
        osc.attach(pipeline.bus)

    pipeline.bus.subscribe(
        Events.ALERT_CHANGED,
        lambda state: logger.warning("ALERT %s", "raised" if state.active else "cleared"),
    )

    # ── Main loop ────────────────────────────────────────────────────────────
    logger.info("Starting. Press Q in preview window (or Ctrl+C) to quit.")
    overlay_on = show_preview
    surface = None

    try:
        with camera, pipeline:
            if osc is not None:
                osc.send_all(pipeline.alert_state)

            while True:
                frame = camera.read()
                if frame is None:
                    if not camera.is_live:
                        logger.info("End of video.")
                        break
                    logger.warning("Empty frame, skipping.")
                    continue

                if surface is None:
                    surface = PreviewSurface(frame.width, frame.height)
                    if overlay_on:
                        pipeline.attach_display(surface)

                pipeline.submit(frame)
                pipeline.publish_pending()

                if show_preview:
                    canvas = frame.image.copy()
                    draw_debug_overlay(canvas, pipeline)
                    cv2.imshow(WINDOW_NAME, canvas)
                    key = cv2.waitKey(1) & 0xFF
                    if key == ord("q"):
                        logger.info("Q pressed — quitting.")
                        break
                    elif key == ord("p"):
                        overlay_on = not overlay_on
                        if overlay_on:
                            pipeline.attach_display(surface)
                        else:
                            pipeline.detach_display()
                    elif key in (ord("+"), ord("=")):
                        pipeline.set_check_interval(pipeline.scheduler.interval + 0.5)
                    elif key == ord("-"):
                        pipeline.set_check_interval(pipeline.scheduler.interval - 0.5)

    except KeyboardInterrupt:
        logger.info("Interrupted — shutting down.")

    finally:
        face_detector.release()
        hand_detector.release()
        if show_preview:
            cv2.destroyAllWindows()
        logger.info("Done.")


if __name__ == "__main__":
    main()
