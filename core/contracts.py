"""Data contracts for camera devices, detections, and extracted metadata."""

from dataclasses import dataclass, field, fields
from typing import Any


@dataclass(slots=True, frozen=True)
class DeviceInfo:
    device_id: str = ""
    label: str = ""
    kind: str = "videoinput"


@dataclass(slots=True, frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(slots=True, frozen=True)
class DetectedBarcode:
    raw_value: str = ""
    format: str = ""
    # Four corners in detection order (top-left first for upright codes).
    corner_points: tuple[Point, ...] = ()


@dataclass(slots=True)
class Dimensions:
    height: str | None = None


def _none_if_blank(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class Metadata:
    title: str | None = None
    excerpt: str | None = None
    year: str | None = None
    cover: str | None = None
    dimensions: Dimensions = field(default_factory=Dimensions)

    def __post_init__(self):
        # Absent facts are None, never "".
        for f in fields(self):
            if f.name == "dimensions":
                continue
            setattr(self, f.name, _none_if_blank(getattr(self, f.name)))
        self.dimensions.height = _none_if_blank(self.dimensions.height)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "dimensions":
                value = {"height": value.height}
            out[f.name] = value
        return out


@dataclass(slots=True)
class BookMetadata(Metadata):
    author: str | None = None
    editor: str | None = None
    isbn: str | None = None
    volume_number: str | None = None
    series_title: str | None = None


@dataclass(slots=True)
class AudioMetadata(Metadata):
    artist: str | None = None
    id_number: str | None = None
    isni: str | None = None


@dataclass(slots=True)
class VideoMetadata(Metadata):
    director: str | None = None
    editor: str | None = None
    id_number: str | None = None


@dataclass(slots=True)
class CoverResult:
    cover_url: str = ""
    upload_id: str = ""
    message: str = ""


@dataclass(slots=True)
class FillOutcome:
    barcode: str = ""
    category: str = ""
    ok: bool = False
    messages: list[str] = field(default_factory=list)
    metadata: Metadata | None = None


__all__ = [
    "DeviceInfo",
    "Point",
    "DetectedBarcode",
    "Dimensions",
    "Metadata",
    "BookMetadata",
    "AudioMetadata",
    "VideoMetadata",
    "CoverResult",
    "FillOutcome",
]
