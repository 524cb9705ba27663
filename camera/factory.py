from camera.camera_base import CameraSource


def create_camera(config: dict) -> CameraSource:
    """
    Factory function that returns the appropriate CameraSource based on config.
    """
    cam_cfg = config.get("camera", {})
    cam_type = cam_cfg.get("type", "webcam").lower()

    if cam_type == "webcam":
        from camera.webcam import WebcamSource
        return WebcamSource(
            device_index=cam_cfg.get("device_index", 0),
            width=cam_cfg.get("width", 1280),
            height=cam_cfg.get("height", 720),
            mirror=cam_cfg.get("mirror", True),
        )

    elif cam_type == "file":
        from camera.video_file import VideoFileSource
        path = cam_cfg.get("path")
        if not path:
            raise ValueError("camera.path is required when camera.type is 'file'")
        return VideoFileSource(
            path=path,
            realtime=cam_cfg.get("realtime", True),
            loop=cam_cfg.get("loop", False),
        )

    else:
        raise ValueError(f"Unknown camera type: '{cam_type}'. Valid options: webcam, file")
