# -- coding: utf-8 --

import asyncio
import logging
import os

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

L = logging.getLogger("media_scan.camera.opencv")

_V4L2_NAME_PATH = "/sys/class/video4linux/video{index}/name"


def _device_label(index: int) -> str:
    path = _V4L2_NAME_PATH.format(index=index)
    if not os.path.isfile(path):
        return ""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        return ""


class _CaptureTrack(VideoTrack):
    def __init__(self, cap: cv2.VideoCapture, label: str = ""):
        super().__init__(label)
        self._cap = cap

    def _release(self):
        self._cap.release()


class OpenCVStream(MediaStream):
    def __init__(self, device_id: str, cap: cv2.VideoCapture, label: str = ""):
        self._cap = cap
        super().__init__(device_id, [_CaptureTrack(cap, label)])

    def _read_frame(self) -> np.ndarray | None:
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        return frame


@register_camera("opencv")
class OpenCVCameraHost(CameraHost):
    """Local cameras through cv2.VideoCapture; device ids are capture indices."""

    def __init__(self, cfg: CameraConfig):
        super().__init__(cfg)
        # Indices held by our own open streams cannot be probed again on V4L2.
        self._held: dict[str, MediaStream] = {}

    async def enumerate_devices(self) -> list[DeviceInfo]:
        return await asyncio.to_thread(self._probe_devices)

    def _probe_devices(self) -> list[DeviceInfo]:
        devices: list[DeviceInfo] = []
        for index in range(max(int(self.cfg.max_devices), 0)):
            device_id = str(index)
            held = self._held.get(device_id)
            if held is not None and held.active:
                devices.append(DeviceInfo(device_id, _device_label(index)))
                continue
            cap = cv2.VideoCapture(index)
            try:
                if cap.isOpened():
                    devices.append(DeviceInfo(device_id, _device_label(index)))
            finally:
                cap.release()
        L.debug("Probed %d capture indices, found %d", self.cfg.max_devices, len(devices))
        return devices

    async def open_stream(self, device_id: str | None = None) -> MediaStream:
        return await asyncio.to_thread(self._open, device_id)

    def _open(self, device_id: str | None) -> MediaStream:
        try:
            index = int(device_id) if device_id else 0
        except ValueError as e:
            raise DeviceError(f"Invalid camera id {device_id!r}") from e
        cap = cv2.VideoCapture(index)
        if not cap.isOpened():
            cap.release()
            raise DeviceError(f"Could not start video source {index}")
        if self.cfg.width and self.cfg.height:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(self.cfg.width))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(self.cfg.height))
        label = _device_label(index)
        stream = OpenCVStream(str(index), cap, label)
        self._held[str(index)] = stream
        L.info("Camera [%d] opened name=%s", index, label or "?")
        return stream


__all__ = ["OpenCVCameraHost", "OpenCVStream"]
