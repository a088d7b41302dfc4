"""Live barcode scanner: camera acquisition, paced detection, duplicate gate.

All state lives on the event loop. Blocking work (frame reads, decoding) is
pushed to worker threads; every async completion re-checks the generation it
started under and is dropped when a stop or a new ``play`` happened since.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np

from camera.base import CameraHost, MediaStream
from camera.surface import VideoSurface
from core.contracts import DetectedBarcode, DeviceInfo
from core.errors import CapabilityUnavailable, DeviceError, ScanError
from core.gate import DetectionGate
from detect.base import Detector, probe_detector
from detect.overlay import OverlayRegion, build_overlay, draw_overlay, region_at

L = logging.getLogger("media_scan.scanner")


class ScannerState(str, Enum):
    IDLE = "idle"
    UNAVAILABLE = "unavailable"
    DEVICE_ENUMERATION = "device_enumeration"
    STREAMING = "streaming"
    DETECTING = "detecting"
    COOLDOWN = "cooldown"
    STOPPED = "stopped"


class ScanMode(str, Enum):
    AUTO = "auto"
    DEBUG = "debug"


@dataclass
class ScannerConfig:
    interval_ms: int = 40
    cooldown_ms: int = 1000
    mode: str = ScanMode.AUTO.value
    preferred_label: str = "back"


def build_device_list(infos: list[DeviceInfo]) -> list[DeviceInfo]:
    """Video inputs only; unlabeled devices become ``Camera 0``, ``Camera 1``..."""
    devices = []
    unnamed = 0
    for info in infos:
        if info.kind != "videoinput":
            continue
        label = info.label
        if not label:
            label = f"Camera {unnamed}"
            unnamed += 1
        devices.append(DeviceInfo(device_id=info.device_id, label=label, kind=info.kind))
    return devices


def pick_default_device(devices: list[DeviceInfo], keyword: str = "back") -> int:
    """Index of the last device whose label contains ``keyword``, else 0."""
    needle = (keyword or "").lower()
    chosen = 0
    if not needle:
        return chosen
    for i, dev in enumerate(devices):
        if needle in dev.label.lower():
            chosen = i
    return chosen


class BarcodeScanner:
    def __init__(
        self,
        host: CameraHost,
        detector_factory: Callable[[], Detector],
        *,
        result_sink: Callable[[str], None],
        config: ScannerConfig | None = None,
        error_sink: Callable[[ScanError], None] | None = None,
        overlay_sink: Callable[[list[OverlayRegion], tuple[int, int]], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.host = host
        self.config = config or ScannerConfig()
        self.mode = ScanMode(str(self.config.mode).lower())
        self.result_sink = result_sink
        self.error_sink = error_sink
        self.overlay_sink = overlay_sink
        self.gate = DetectionGate(self.config.cooldown_ms, clock=clock)
        self.surface = VideoSurface(
            on_loaded_data=self._on_loaded_data, on_error=self._on_stream_error
        )
        self.state = ScannerState.IDLE
        self.devices: list[DeviceInfo] = []
        self.device_id: str | None = None
        self.regions: list[OverlayRegion] = []
        self.last_result: str | None = None
        self.completed = asyncio.Event()
        self._detector_factory = detector_factory
        self._detector: Detector | None = None
        self._stream: MediaStream | None = None
        self._timer: asyncio.Task | None = None
        self._decode_task: asyncio.Task | None = None
        self._generation = 0
        self._busy = False
        self._tick_seq = 0

    async def __aenter__(self) -> "BarcodeScanner":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def available(self) -> bool:
        return self._detector is not None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def generation(self) -> int:
        return self._generation

    async def initialize(self) -> bool:
        """Check detector capability once; failure disables ``start``."""
        if self._detector is not None:
            return True
        if self.state is ScannerState.UNAVAILABLE:
            return False
        try:
            self._detector = await probe_detector(self._detector_factory)
        except CapabilityUnavailable as e:
            self.state = ScannerState.UNAVAILABLE
            self._report(e)
            return False
        return True

    async def start(self) -> list[DeviceInfo]:
        if not self.available:
            L.info("Scanner start ignored: barcode detection unavailable")
            return []
        self.state = ScannerState.DEVICE_ENUMERATION
        gen = self._generation
        try:
            # A generic capture first; some hosts only expose labels afterwards.
            generic = await self.host.open_stream(None)
            self._release(generic)
            infos = await self.host.enumerate_devices()
        except DeviceError as e:
            if gen == self._generation:
                self.state = ScannerState.IDLE
                self._report(e)
            return []
        if gen != self._generation:
            L.debug("Discard stale device enumeration gen=%d", gen)
            return []
        self.devices = build_device_list(infos)
        if not self.devices:
            self.state = ScannerState.IDLE
            self._report(DeviceError("No camera device found"))
            return []
        idx = pick_default_device(self.devices, self.config.preferred_label)
        L.info(
            "Cameras: %s default=%s",
            ", ".join(d.label for d in self.devices),
            self.devices[idx].label,
        )
        await self.play(self.devices[idx].device_id)
        return list(self.devices)

    async def play(self, device_id: str | None = None) -> bool:
        """Release the current stream, then capture ``device_id`` (any if None)."""
        if not self.available:
            return False
        self._teardown()
        self._generation += 1
        gen = self._generation
        self.device_id = device_id
        self.state = ScannerState.DEVICE_ENUMERATION
        try:
            stream = await self.host.open_stream(device_id)
        except DeviceError as e:
            if gen == self._generation:
                self.state = ScannerState.IDLE
                self._report(e)
            return False
        if gen != self._generation:
            L.debug("Discard stale capture dev=%s gen=%d", device_id, gen)
            self._release(stream)
            return False
        self._stream = stream
        self.state = ScannerState.STREAMING
        self.surface.bind(stream)
        L.info("Streaming dev=%s", stream.device_id)
        return True

    async def change_device(self, device_id: str) -> bool:
        return await self.play(device_id)

    def stop(self):
        self._generation += 1
        self._teardown()
        self.regions = []
        if self.state is not ScannerState.UNAVAILABLE:
            self.state = ScannerState.STOPPED

    async def close(self):
        timer = self._timer
        self.stop()
        await self.surface.aclose()
        for task in (timer, self._decode_task):
            if task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._decode_task = None

    async def wait_result(self) -> str | None:
        """Wait for the next auto-filled value and re-arm the completion signal."""
        await self.completed.wait()
        self.completed.clear()
        return self.last_result

    def tick(self) -> asyncio.Task | None:
        """Start one detection pass; None when dropped (busy, no frame, stopped)."""
        if self._detector is None or self._stream is None:
            return None
        if self._busy:
            L.debug("Tick dropped: detection in flight")
            return None
        frame = self.surface.current_frame
        if frame is None:
            return None
        if self.state is ScannerState.COOLDOWN and not self.gate.in_cooldown():
            self.state = ScannerState.DETECTING
        self._busy = True
        self._tick_seq += 1
        self._decode_task = asyncio.get_running_loop().create_task(
            self._decode(frame, self._generation, self._tick_seq),
            name=f"scanner-decode-{self._tick_seq}",
        )
        return self._decode_task

    def select_at(self, x: float, y: float) -> str | None:
        """Debug mode: write the value of the region under (x, y), if any."""
        region = region_at(self.regions, x, y)
        if region is None:
            return None
        return self.select_region(region)

    def select(self, index: int) -> str | None:
        if not 0 <= index < len(self.regions):
            return None
        return self.select_region(self.regions[index])

    def select_region(self, region: OverlayRegion) -> str:
        """Write a region's value to the result sink; scanning continues."""
        self._emit(region.value, completes=False)
        return region.value

    def render_overlay(self) -> np.ndarray | None:
        frame = self.surface.current_frame
        if frame is None:
            return None
        return draw_overlay(frame, self.regions)

    async def _decode(self, frame: np.ndarray, gen: int, seq: int):
        t0 = time.perf_counter()
        try:
            barcodes = await asyncio.to_thread(self._detector.detect, frame)
        except Exception as e:
            L.warning("[%5s] detect failed: %s", seq, e)
            barcodes = []
        finally:
            self._busy = False
        if gen != self._generation:
            L.debug("[%5s] discard stale detection gen=%d", seq, gen)
            return
        if barcodes:
            L.debug(
                "[%5s] dev=%s detect=%.2fms found=%d",
                seq,
                self.device_id,
                (time.perf_counter() - t0) * 1000,
                len(barcodes),
            )
        self._handle_results(barcodes)

    def _handle_results(self, barcodes: list[DetectedBarcode]):
        if self.mode is ScanMode.DEBUG:
            self.regions = build_overlay(barcodes)
            if self.overlay_sink:
                self.overlay_sink(list(self.regions), self.surface.frame_size)
            return
        for barcode in barcodes:
            if self.gate.accept(barcode.raw_value):
                self.state = ScannerState.COOLDOWN
                self._emit(barcode.raw_value, completes=True)
                return

    def _emit(self, value: str, *, completes: bool):
        L.info("Barcode detected value=%s mode=%s", value, self.mode.value)
        self.last_result = value
        try:
            self.result_sink(value)
        except Exception:
            L.exception("result sink failed")
        if completes:
            self.completed.set()

    def _on_loaded_data(self):
        if self._stream is None:
            return
        self._cancel_timer()
        self.state = ScannerState.DETECTING
        self._timer = asyncio.get_running_loop().create_task(
            self._run_timer(self._generation), name="scanner-timer"
        )

    def _on_stream_error(self, err: Exception):
        self._report(err if isinstance(err, ScanError) else DeviceError(str(err)))

    async def _run_timer(self, gen: int):
        interval_s = max(int(self.config.interval_ms), 1) / 1000.0
        while gen == self._generation:
            await asyncio.sleep(interval_s)
            if gen != self._generation:
                return
            self.tick()

    def _cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()

    def _teardown(self):
        self._cancel_timer()
        self.surface.unbind()
        stream, self._stream = self._stream, None
        if stream is not None:
            self._release(stream)

    def _release(self, stream: MediaStream):
        # A read in flight finishes the release on its worker thread.
        loop = asyncio.get_running_loop()
        stream.on_deferred_error = lambda err: loop.call_soon_threadsafe(self._report, err)
        try:
            stream.stop()
        except Exception as e:
            err = e if isinstance(e, ScanError) else DeviceError(f"Track release failed ({e})")
            self._report(err)

    def _report(self, err: ScanError):
        L.warning("%s: %s", type(err).__name__, err)
        if self.error_sink:
            try:
                self.error_sink(err)
            except Exception:
                L.exception("error sink failed")


__all__ = [
    "ScannerState",
    "ScanMode",
    "ScannerConfig",
    "BarcodeScanner",
    "build_device_list",
    "pick_default_device",
]
