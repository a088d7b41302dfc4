import asyncio
import logging
from typing import Callable, Dict, List, Protocol, Tuple

import cv2
import numpy as np

from core.contracts import DetectedBarcode
from core.errors import CapabilityUnavailable
from core.registry import register_named, resolve_registered

L = logging.getLogger("media_scan.detection")


class Detector(Protocol):
    def supported_formats(self) -> List[str]:
        """Symbology names this detector can decode."""
        ...

    def detect(self, img: np.ndarray) -> List[DetectedBarcode]:
        """Every code found in the frame, in detection order."""
        ...


_registry: Dict[str, Callable[..., Detector]] = {}


def register_detector(name: str):
    return register_named(_registry, name)


def create_detector(name: str, params: dict | None = None) -> Detector:
    # Lazy import: a detector's native library is only loaded when selected.
    factory = resolve_registered(
        _registry,
        name,
        package=__package__ or "detect",
        unknown_label="detector impl",
    )
    return factory(params or {})


def create_detector_from_loaded_config(cfg) -> Detector:
    scanner = cfg.scanner
    params = {
        "formats": list(scanner.formats or []),
        "downscale_factor": scanner.downscale_factor,
    }
    return create_detector(scanner.detector, params)


async def probe_detector(factory: Callable[[], Detector]) -> Detector:
    """Build the detector off-loop and require at least one symbology.

    Raises CapabilityUnavailable when the backend cannot be loaded or reports
    no supported format.
    """
    try:
        detector = await asyncio.to_thread(factory)
        formats = list(detector.supported_formats())
    except (ImportError, OSError, ValueError, RuntimeError) as e:
        raise CapabilityUnavailable(
            f"Barcode detection is not supported on this host ({e})"
        ) from e
    if not formats:
        raise CapabilityUnavailable("Barcode detection is not supported on this host")
    L.info("Barcode detector ready formats=%s", ",".join(formats))
    return detector


def encode_image_jpeg(
    img: np.ndarray, quality: int = 80, subsampling: int = 2
) -> Tuple[bytes, str]:
    """
    Encode image to JPEG bytes with speed-friendly params.
    Returns (bytes, content_type).
    """
    bgr = img.astype(np.uint8, copy=False)
    params = [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)]
    if hasattr(cv2, "IMWRITE_JPEG_SAMPLING_FACTOR"):
        factor_map = {
            0: "IMWRITE_JPEG_SAMPLING_FACTOR_444",
            1: "IMWRITE_JPEG_SAMPLING_FACTOR_422",
            2: "IMWRITE_JPEG_SAMPLING_FACTOR_420",
        }
        factor_name = factor_map.get(int(subsampling))
        factor = getattr(cv2, factor_name, None) if factor_name else None
        if factor is not None:
            params += [int(cv2.IMWRITE_JPEG_SAMPLING_FACTOR), int(factor)]
    ok, buf = cv2.imencode(".jpg", bgr, params)
    if not ok:
        raise RuntimeError("opencv_imencode_failed")
    return buf.tobytes(), "image/jpeg"


__all__ = [
    "Detector",
    "register_detector",
    "create_detector",
    "create_detector_from_loaded_config",
    "probe_detector",
    "encode_image_jpeg",
]
