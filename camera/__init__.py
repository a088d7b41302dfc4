from .base import (
    CameraConfig,
    CameraHost,
    MediaStream,
    VideoTrack,
    build_camera_config,
    create_camera,
    create_camera_from_loaded_config,
    register_camera,
)
from .surface import VideoSurface

__all__ = [
    "CameraConfig",
    "CameraHost",
    "MediaStream",
    "VideoTrack",
    "VideoSurface",
    "build_camera_config",
    "create_camera",
    "create_camera_from_loaded_config",
    "register_camera",
]
