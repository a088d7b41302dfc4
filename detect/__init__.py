from .base import (
    Detector,
    create_detector,
    create_detector_from_loaded_config,
    encode_image_jpeg,
    probe_detector,
    register_detector,
)
from .overlay import OverlayRegion, build_overlay, draw_overlay, region_at

__all__ = [
    "Detector",
    "OverlayRegion",
    "build_overlay",
    "create_detector",
    "create_detector_from_loaded_config",
    "draw_overlay",
    "encode_image_jpeg",
    "probe_detector",
    "region_at",
    "register_detector",
]
