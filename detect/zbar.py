import logging
from typing import List

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from core.contracts import DetectedBarcode, Point

from .base import register_detector

L = logging.getLogger("media_scan.detection.zbar")

# Pseudo symbologies ZBar reports but never decodes on their own.
_NOT_DECODABLE = {"NONE", "PARTIAL"}


def _parse_symbols(names) -> list[ZBarSymbol]:
    symbols = []
    for name in names or []:
        key = str(name).strip().upper().replace("-", "").replace("_", "")
        match = next(
            (s for s in ZBarSymbol if s.name.replace("_", "") == key), None
        )
        if match is None or match.name in _NOT_DECODABLE:
            raise ValueError(f"detect format {name!r} is not a ZBar symbology")
        symbols.append(match)
    return symbols


def _to_gray(img: np.ndarray) -> np.ndarray:
    if img.ndim == 2:
        return img.astype(np.uint8, copy=False)
    if img.ndim == 3 and img.shape[2] == 1:
        return img[:, :, 0].astype(np.uint8, copy=False)
    if img.ndim == 3 and img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)


def corner_points(polygon, rect) -> tuple[Point, ...]:
    """Four corners from ZBar's location polygon (or its bounding rect)."""
    pts = [(float(p.x), float(p.y)) for p in (polygon or [])]
    if len(pts) == 4:
        return tuple(Point(x, y) for x, y in pts)
    if len(pts) > 4:
        box = cv2.boxPoints(cv2.minAreaRect(np.array(pts, dtype=np.float32)))
        return tuple(Point(float(x), float(y)) for x, y in box)
    left, top, width, height = (float(v) for v in rect)
    return (
        Point(left, top),
        Point(left + width, top),
        Point(left + width, top + height),
        Point(left, top + height),
    )


@register_detector("zbar")
class ZBarDetector:
    def __init__(self, params: dict):
        self.symbols = _parse_symbols(params.get("formats"))
        self.downscale_factor = float(params.get("downscale_factor", 1.0))
        self._validate()

    def supported_formats(self) -> List[str]:
        symbols = self.symbols or list(ZBarSymbol)
        return [s.name for s in symbols if s.name not in _NOT_DECODABLE]

    def detect(self, img: np.ndarray) -> List[DetectedBarcode]:
        gray = _to_gray(img)
        scale = 1.0
        if self.downscale_factor < 0.999:
            step = max(1, int(round(1.0 / self.downscale_factor)))
            gray = np.ascontiguousarray(gray[::step, ::step])
            scale = float(step)
        results = decode(gray, symbols=self.symbols or None)
        barcodes = []
        for r in results:
            raw = r.data.decode("utf-8", errors="replace").strip()
            if not raw:
                continue
            corners = corner_points(r.polygon, r.rect)
            if scale != 1.0:
                corners = tuple(Point(p.x * scale, p.y * scale) for p in corners)
            barcodes.append(
                DetectedBarcode(raw_value=raw, format=str(r.type), corner_points=corners)
            )
        return barcodes

    def _validate(self):
        if not (0 < self.downscale_factor <= 1.0):
            raise ValueError("detect downscale_factor must be in (0, 1]")


__all__ = ["ZBarDetector", "corner_points"]
