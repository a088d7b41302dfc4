# -- coding: utf-8 --

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Type

import numpy as np

from core.contracts import DeviceInfo
from core.errors import DeviceError
from core.registry import register_named, resolve_registered

L = logging.getLogger("media_scan.camera")

CameraFactory = Dict[str, Type["CameraHost"]]
_registry: CameraFactory = {}


@dataclass
class CameraConfig:
    max_devices: int = 4
    width: int = 0
    height: int = 0
    read_timeout_ms: int = 2000
    image_dir: str = ""
    order: str = "name_asc"
    end_mode: str = "loop"
    frame_interval_ms: int = 33
    labels: list[str] = field(default_factory=list)


def build_camera_config(cfg_block) -> CameraConfig:
    return CameraConfig(
        max_devices=int(cfg_block.max_devices),
        width=int(cfg_block.width),
        height=int(cfg_block.height),
        read_timeout_ms=int(cfg_block.read_timeout_ms),
        image_dir=str(cfg_block.image_dir),
        order=str(cfg_block.order),
        end_mode=str(cfg_block.end_mode),
        frame_interval_ms=int(cfg_block.frame_interval_ms),
        labels=[str(label) for label in (cfg_block.labels or [])],
    )


class VideoTrack(ABC):
    """One track of a media stream; stopping it releases the device handle."""

    kind = "video"

    def __init__(self, label: str = ""):
        self.label = label
        self.ready_state = "live"

    def end(self) -> bool:
        """Mark the track ended without releasing; False when it already was."""
        if self.ready_state == "ended":
            return False
        self.ready_state = "ended"
        return True

    def stop(self):
        if self.end():
            self._release()

    @abstractmethod
    def _release(self):
        """Free the underlying device handle."""


def _release_tracks(tracks: list[VideoTrack]) -> list[str]:
    errors: list[str] = []
    for track in tracks:
        try:
            track._release()
        except Exception as e:
            errors.append(f"{track.label or track.kind}: {e}")
    return errors


class MediaStream(ABC):
    """Video-only capture bound to one device.

    ``read`` blocks and is meant to run in a worker thread. A ``stop`` that
    lands during a read only ends the tracks; the reader frees the device
    once its read returns and hands any failure to ``on_deferred_error``.
    """

    def __init__(self, device_id: str, tracks: list[VideoTrack] | None = None):
        self.device_id = device_id
        self.lock = threading.Lock()
        self.on_deferred_error: Callable[[DeviceError], None] | None = None
        self._read_lock = threading.Lock()
        self._tracks: list[VideoTrack] = list(tracks or [])
        self._reading = False
        self._deferred: list[VideoTrack] = []

    def get_tracks(self) -> list[VideoTrack]:
        return list(self._tracks)

    @property
    def active(self) -> bool:
        return any(t.ready_state == "live" for t in self._tracks)

    def read(self) -> np.ndarray | None:
        with self._read_lock:
            with self.lock:
                if not self.active:
                    return None
                self._reading = True
            try:
                frame = self._read_frame()
            finally:
                with self.lock:
                    self._reading = False
                    deferred, self._deferred = self._deferred, []
                if deferred:
                    self._finish_deferred(deferred)
        if deferred:
            return None
        return frame

    @abstractmethod
    def _read_frame(self) -> np.ndarray | None:
        """Grab the next frame, None when nothing is available yet."""

    def stop(self):
        """Stop every track; raises DeviceError after trying all of them."""
        with self.lock:
            ended = [track for track in self._tracks if track.end()]
            if self._reading:
                self._deferred.extend(ended)
                if ended:
                    L.debug("Release deferred to in-flight read dev=%s", self.device_id)
                return
        errors = _release_tracks(ended)
        if errors:
            raise DeviceError(f"Track release failed ({'; '.join(errors)})")

    def _finish_deferred(self, tracks: list[VideoTrack]):
        errors = _release_tracks(tracks)
        if not errors:
            return
        err = DeviceError(f"Track release failed ({'; '.join(errors)})")
        L.warning("dev=%s %s", self.device_id, err)
        if self.on_deferred_error:
            self.on_deferred_error(err)


class CameraHost(ABC):
    """What the host exposes about cameras: enumeration and capture."""

    def __init__(self, cfg: CameraConfig):
        self.cfg = cfg

    @abstractmethod
    async def enumerate_devices(self) -> list[DeviceInfo]:
        """All devices, video inputs or not."""

    @abstractmethod
    async def open_stream(self, device_id: str | None = None) -> MediaStream:
        """Video-only capture; ``None`` lets the host pick any camera."""


def register_camera(name: str):
    return register_named(_registry, name)


def create_camera(name: str, cfg: CameraConfig) -> CameraHost:
    cls = resolve_registered(
        _registry,
        name,
        package=__package__ or "camera",
        unknown_label="camera type",
    )
    return cls(cfg)


def create_camera_from_loaded_config(cfg) -> CameraHost:
    return create_camera(cfg.camera.type, build_camera_config(cfg.camera))


__all__ = [
    "CameraConfig",
    "build_camera_config",
    "VideoTrack",
    "MediaStream",
    "CameraHost",
    "register_camera",
    "create_camera",
    "create_camera_from_loaded_config",
]
