"""Live video surface: pumps frames from the bound stream into a single slot.

The surface fires ``on_loaded_data`` once per binding, as soon as the first
usable frame is available (the point where a detection loop may start).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

import numpy as np

from camera.base import MediaStream

L = logging.getLogger("media_scan.camera.surface")

# Consecutive empty reads tolerated before the pump backs off.
_EMPTY_READ_BACKOFF = 5


class VideoSurface:
    def __init__(
        self,
        *,
        on_loaded_data: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        idle_backoff_ms: float = 20.0,
    ):
        self.on_loaded_data = on_loaded_data
        self.on_error = on_error
        self._idle_backoff_s = max(idle_backoff_ms, 0.0) / 1000.0
        self._stream: MediaStream | None = None
        self._pump_task: asyncio.Task | None = None
        self._binding = 0
        self.current_frame: np.ndarray | None = None
        self.frame_seq = 0
        self.loaded = asyncio.Event()

    @property
    def stream(self) -> MediaStream | None:
        return self._stream

    @property
    def frame_size(self) -> tuple[int, int]:
        """(width, height) of the current frame, (0, 0) before loadeddata."""
        frame = self.current_frame
        if frame is None:
            return 0, 0
        return int(frame.shape[1]), int(frame.shape[0])

    def bind(self, stream: MediaStream):
        self.unbind()
        self._binding += 1
        self._stream = stream
        self._pump_task = asyncio.get_running_loop().create_task(
            self._pump(stream, self._binding), name=f"surface-pump-{stream.device_id}"
        )

    def unbind(self):
        self._binding += 1
        self._stream = None
        self.current_frame = None
        self.loaded.clear()
        task, self._pump_task = self._pump_task, None
        if task is not None and not task.done():
            task.cancel()

    async def aclose(self):
        task = self._pump_task
        self.unbind()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _pump(self, stream: MediaStream, binding: int):
        empty_reads = 0
        while binding == self._binding and stream.active:
            try:
                frame = await asyncio.to_thread(stream.read)
            except Exception as e:
                L.warning("Frame read failed dev=%s err=%s", stream.device_id, e)
                if self.on_error and binding == self._binding:
                    self.on_error(e)
                return
            if binding != self._binding:
                return
            if frame is None:
                empty_reads += 1
                if empty_reads >= _EMPTY_READ_BACKOFF:
                    await asyncio.sleep(self._idle_backoff_s)
                continue
            empty_reads = 0
            self.current_frame = frame
            self.frame_seq += 1
            if not self.loaded.is_set():
                self.loaded.set()
                w, h = self.frame_size
                L.debug("loadeddata dev=%s size=%dx%d", stream.device_id, w, h)
                if self.on_loaded_data:
                    self.on_loaded_data()


__all__ = ["VideoSurface"]
