# -- coding: utf-8 --

import logging
import os
import random
import re
import time

import cv2
import numpy as np

from camera.base import (
    CameraConfig,
    CameraHost,
    MediaStream,
    VideoTrack,
    register_camera,
)
from core.contracts import DeviceInfo
from core.errors import DeviceError

L = logging.getLogger("media_scan.camera.mock")

_SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".bmp"}
_ORDER_CHOICES = {"name_asc", "name_desc", "name_natural", "mtime_asc", "random"}
_END_CHOICES = {"loop", "stop", "hold"}
_DEFAULT_LABELS = ["Mock front camera", "Mock back camera"]


def _natural_key(name: str):
    return [
        int(part) if part.isdigit() else part.lower()
        for part in re.split(r"(\d+)", name)
    ]


def _resolve_image_dir(path: str) -> str:
    base = str(path or "").strip()
    if not base:
        raise DeviceError("mock image_dir is required")
    if not os.path.isabs(base):
        base = os.path.abspath(os.path.join(os.getcwd(), base))
    if not os.path.isdir(base):
        raise DeviceError(f"mock image_dir not found: {base}")
    return base


def _list_images(root_dir: str) -> list[str]:
    return [
        os.path.join(root_dir, name)
        for name in os.listdir(root_dir)
        if os.path.isfile(os.path.join(root_dir, name))
        and os.path.splitext(name)[1].lower() in _SUPPORTED_EXTS
    ]


def _sort_images(paths: list[str], order: str) -> list[str]:
    if order == "name_asc":
        return sorted(paths, key=lambda p: os.path.basename(p).lower())
    if order == "name_desc":
        return sorted(paths, key=lambda p: os.path.basename(p).lower(), reverse=True)
    if order == "name_natural":
        return sorted(paths, key=lambda p: _natural_key(os.path.basename(p)))
    if order == "mtime_asc":
        return sorted(paths, key=os.path.getmtime)
    shuffled = list(paths)
    random.shuffle(shuffled)
    return shuffled


def _imread_any(path: str) -> np.ndarray | None:
    arr = cv2.imread(path, cv2.IMREAD_COLOR)
    if arr is not None:
        return arr
    # cv2.imread cannot open non-ASCII paths on some platforms.
    data = np.fromfile(path, dtype=np.uint8)
    if data.size == 0:
        return None
    return cv2.imdecode(data, cv2.IMREAD_COLOR)


class _FileTrack(VideoTrack):
    def _release(self):
        pass


class MockStream(MediaStream):
    """Replays an image folder as a live feed."""

    def __init__(self, device_id: str, label: str, paths: list[str], cfg: CameraConfig):
        super().__init__(device_id, [_FileTrack(label)])
        self._paths = paths
        self._pos = 0
        self._order = cfg.order
        self._end_mode = cfg.end_mode
        self._interval_s = max(int(cfg.frame_interval_ms), 0) / 1000.0
        self._last_read = 0.0
        self._last_frame: np.ndarray | None = None

    def _next_path(self) -> str | None:
        if self._pos < len(self._paths):
            path = self._paths[self._pos]
            self._pos += 1
            return path
        if self._end_mode == "loop":
            if self._order == "random":
                self._paths = _sort_images(self._paths, self._order)
            self._pos = 1
            return self._paths[0]
        if self._end_mode == "hold":
            return self._paths[-1]
        return None

    def _read_frame(self) -> np.ndarray | None:
        # Pace reads like a real sensor would.
        wait_s = self._interval_s - (time.monotonic() - self._last_read)
        if wait_s > 0:
            time.sleep(wait_s)
        self._last_read = time.monotonic()
        holding = self._end_mode == "hold" and self._pos >= len(self._paths)
        if holding and self._last_frame is not None:
            return self._last_frame
        path = self._next_path()
        if path is None:
            return None
        frame = _imread_any(path)
        if frame is None:
            L.warning("mock read failed: %s", path)
            return None
        self._last_frame = frame
        return frame


@register_camera("mock")
class MockCameraHost(CameraHost):
    def __init__(self, cfg: CameraConfig):
        super().__init__(cfg)
        self._order = str(cfg.order or "name_asc").strip().lower()
        self._end_mode = str(cfg.end_mode or "loop").strip().lower()
        self._labels = list(cfg.labels) or list(_DEFAULT_LABELS)

    async def enumerate_devices(self) -> list[DeviceInfo]:
        return [
            DeviceInfo(device_id=f"mock-{i}", label=label)
            for i, label in enumerate(self._labels)
        ]

    async def open_stream(self, device_id: str | None = None) -> MediaStream:
        if self._order not in _ORDER_CHOICES:
            raise DeviceError(
                f"mock order must be one of {sorted(_ORDER_CHOICES)}, got {self._order!r}"
            )
        if self._end_mode not in _END_CHOICES:
            raise DeviceError(
                f"mock end_mode must be one of {sorted(_END_CHOICES)}, got {self._end_mode!r}"
            )
        device_id = device_id or "mock-0"
        labels = {f"mock-{i}": label for i, label in enumerate(self._labels)}
        if device_id not in labels:
            raise DeviceError(f"Requested device not found: {device_id}")
        root_dir = _resolve_image_dir(self.cfg.image_dir)
        paths = _sort_images(_list_images(root_dir), self._order)
        if not paths:
            raise DeviceError(f"no images found in {root_dir}")
        cfg = CameraConfig(
            image_dir=root_dir,
            order=self._order,
            end_mode=self._end_mode,
            frame_interval_ms=self.cfg.frame_interval_ms,
        )
        L.info("mock stream %s (%s) frames=%d", device_id, labels[device_id], len(paths))
        return MockStream(device_id, labels[device_id], paths, cfg)


__all__ = ["MockCameraHost", "MockStream"]
