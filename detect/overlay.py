"""Debug overlay: one selectable outline per detected code."""

from dataclasses import dataclass

import cv2
import numpy as np

from core.contracts import DetectedBarcode, Point

_OUTLINE_BGR = (0, 0, 255)
_LABEL_OFFSET_Y = -10.0


@dataclass(slots=True, frozen=True)
class OverlayRegion:
    value: str
    points: tuple[Point, ...]
    label_pos: Point

    @property
    def svg_points(self) -> str:
        return " ".join(f"{p.x:g},{p.y:g}" for p in self.points)

    def contains(self, x: float, y: float) -> bool:
        if len(self.points) < 3:
            return False
        contour = np.array([[p.x, p.y] for p in self.points], dtype=np.float32)
        return cv2.pointPolygonTest(contour, (float(x), float(y)), False) >= 0


def build_overlay(barcodes: list[DetectedBarcode]) -> list[OverlayRegion]:
    regions = []
    for barcode in barcodes:
        if not barcode.corner_points:
            continue
        first = barcode.corner_points[0]
        regions.append(
            OverlayRegion(
                value=barcode.raw_value,
                points=tuple(barcode.corner_points),
                label_pos=Point(first.x, first.y + _LABEL_OFFSET_Y),
            )
        )
    return regions


def region_at(regions: list[OverlayRegion], x: float, y: float) -> OverlayRegion | None:
    # Last drawn wins when outlines overlap.
    for region in reversed(regions):
        if region.contains(x, y):
            return region
    return None


def draw_overlay(frame: np.ndarray, regions: list[OverlayRegion]) -> np.ndarray:
    """Copy of ``frame`` with every region outlined and labelled."""
    out = frame.copy()
    if out.ndim == 2:
        out = cv2.cvtColor(out, cv2.COLOR_GRAY2BGR)
    for region in regions:
        pts = np.array([[p.x, p.y] for p in region.points], dtype=np.int32)
        cv2.polylines(out, [pts.reshape(-1, 1, 2)], True, _OUTLINE_BGR, 2)
        org = (int(region.label_pos.x), max(int(region.label_pos.y), 12))
        cv2.putText(
            out, region.value, org, cv2.FONT_HERSHEY_SIMPLEX, 0.5, _OUTLINE_BGR, 1, cv2.LINE_AA
        )
    return out


__all__ = ["OverlayRegion", "build_overlay", "region_at", "draw_overlay"]
