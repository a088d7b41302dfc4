import asyncio
import time
import unittest

import numpy as np

from camera.base import CameraConfig, CameraHost, MediaStream, VideoTrack
from core.contracts import DetectedBarcode, DeviceInfo, Point
from core.errors import CapabilityUnavailable, DeviceError
from core.gate import DetectionGate
from core.scanner import (
    BarcodeScanner,
    ScannerConfig,
    ScannerState,
    build_device_list,
    pick_default_device,
)

# Large interval: ticks are driven by the tests, never by the timer.
MANUAL_TICKS = ScannerConfig(interval_ms=60_000)


class FakeClock:
    def __init__(self):
        self.t = 100.0

    def __call__(self) -> float:
        return self.t


class FakeTrack(VideoTrack):
    def __init__(self, label: str, fail: bool = False):
        super().__init__(label)
        self.fail = fail

    def _release(self):
        if self.fail:
            raise RuntimeError("device busy")


class FakeStream(MediaStream):
    def __init__(self, device_id: str, fail_release: bool = False):
        super().__init__(device_id, [FakeTrack(device_id, fail_release)])
        self.frame = np.zeros((60, 80, 3), dtype=np.uint8)

    def _read_frame(self):
        time.sleep(0.002)
        return self.frame


class FakeHost(CameraHost):
    def __init__(self, devices: list[DeviceInfo]):
        super().__init__(CameraConfig())
        self.devices = devices
        self.opened: list[FakeStream] = []
        self.fail_open: set[str] = set()
        self.fail_release = False
        # When set, the matching call parks until the event fires.
        self.hold_open: asyncio.Event | None = None
        self.hold_enum: asyncio.Event | None = None
        self.waiting = asyncio.Event()

    async def _park(self, hold: asyncio.Event | None):
        if hold is not None:
            self.waiting.set()
            await hold.wait()

    async def enumerate_devices(self):
        await self._park(self.hold_enum)
        return list(self.devices)

    async def open_stream(self, device_id=None):
        await self._park(self.hold_open)
        if not self.devices:
            raise DeviceError("Requested device not found")
        device_id = device_id or self.devices[0].device_id
        if device_id in self.fail_open:
            raise DeviceError(f"Could not open camera {device_id}")
        stream = FakeStream(device_id, self.fail_release)
        self.opened.append(stream)
        return stream


class FakeDetector:
    def __init__(self, formats=("EAN13",)):
        self.formats = list(formats)
        self.results: list[DetectedBarcode] = []
        self.calls = 0

    def supported_formats(self):
        return self.formats

    def detect(self, img):
        self.calls += 1
        return list(self.results)


def _barcode(value: str, x: float = 10.0, y: float = 10.0) -> DetectedBarcode:
    return DetectedBarcode(
        raw_value=value,
        format="EAN13",
        corner_points=(
            Point(x, y),
            Point(x + 100, y),
            Point(x + 100, y + 50),
            Point(x, y + 50),
        ),
    )


def _devices(*labels: str) -> list[DeviceInfo]:
    return [DeviceInfo(device_id=f"cam-{i}", label=label) for i, label in enumerate(labels)]


class TestDetectionGate(unittest.TestCase):
    def test_cooldown_only_blocks_identical_value(self):
        clock = FakeClock()
        gate = DetectionGate(1000, clock=clock)
        self.assertTrue(gate.accept("X"))
        clock.t += 0.5
        self.assertFalse(gate.accept("X"))
        clock.t += 1.0
        self.assertTrue(gate.accept("X"))
        self.assertTrue(gate.accept("Y"))
        self.assertTrue(gate.accept("X"))

    def test_in_cooldown_and_reset(self):
        clock = FakeClock()
        gate = DetectionGate(1000, clock=clock)
        self.assertFalse(gate.in_cooldown())
        gate.accept("X")
        self.assertTrue(gate.in_cooldown())
        gate.reset()
        self.assertFalse(gate.in_cooldown())
        self.assertTrue(gate.accept("X"))


class TestDeviceSelection(unittest.TestCase):
    def test_unlabeled_devices_are_numbered(self):
        infos = [
            DeviceInfo("a", ""),
            DeviceInfo("mic", "Microphone", kind="audioinput"),
            DeviceInfo("b", "Front"),
            DeviceInfo("c", ""),
        ]
        labels = [d.label for d in build_device_list(infos)]
        self.assertEqual(labels, ["Camera 0", "Front", "Camera 1"])

    def test_default_is_last_back_camera(self):
        devices = _devices("Front", "Back camera", "Camera 3", "back ultra wide")
        self.assertEqual(pick_default_device(devices, "back"), 3)
        self.assertEqual(pick_default_device(_devices("Front", "USB"), "back"), 0)
        self.assertEqual(pick_default_device(devices, ""), 0)


class TestBarcodeScanner(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.host = FakeHost(_devices("Front camera", "Back camera"))
        self.detector = FakeDetector()
        self.writes: list[str] = []
        self.errors: list[Exception] = []

    def _scanner(self, config: ScannerConfig = MANUAL_TICKS, **kwargs) -> BarcodeScanner:
        return BarcodeScanner(
            self.host,
            lambda: self.detector,
            result_sink=self.writes.append,
            error_sink=self.errors.append,
            config=config,
            clock=self.clock,
            **kwargs,
        )

    async def _started(self, scanner: BarcodeScanner):
        await scanner.initialize()
        devices = await scanner.start()
        self.assertTrue(devices)
        await asyncio.wait_for(scanner.surface.loaded.wait(), timeout=2.0)
        return devices

    async def _tick(self, scanner: BarcodeScanner):
        task = scanner.tick()
        self.assertIsNotNone(task)
        await task

    async def test_start_picks_back_camera_and_streams(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            self.assertEqual(scanner.device_id, "cam-1")
            self.assertIs(scanner.state, ScannerState.DETECTING)
            # Generic capture used for enumeration is released.
            self.assertFalse(self.host.opened[0].active)
            self.assertTrue(self.host.opened[-1].active)
        self.assertFalse(self.host.opened[-1].active)
        self.assertIs(scanner.state, ScannerState.STOPPED)

    async def test_duplicate_within_cooldown_written_once(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("X")]
            await self._tick(scanner)
            self.clock.t += 0.5
            await self._tick(scanner)
        self.assertEqual(self.writes, ["X"])

    async def test_duplicate_after_cooldown_written_twice(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("X")]
            await self._tick(scanner)
            self.assertIs(scanner.state, ScannerState.COOLDOWN)
            self.clock.t += 1.5
            await self._tick(scanner)
        self.assertEqual(self.writes, ["X", "X"])

    async def test_first_accepted_detection_per_tick(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("A"), _barcode("B", x=200)]
            await self._tick(scanner)
            self.assertEqual(self.writes, ["A"])
            self.assertTrue(scanner.completed.is_set())
            self.assertEqual(await scanner.wait_result(), "A")
            self.assertFalse(scanner.completed.is_set())
            # Camera keeps running after a result.
            self.assertTrue(self.host.opened[-1].active)

    async def test_tick_dropped_while_detection_in_flight(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            first = scanner.tick()
            self.assertIsNotNone(first)
            self.assertTrue(scanner.busy)
            self.assertIsNone(scanner.tick())
            await first
            self.assertFalse(scanner.busy)
        self.assertEqual(self.detector.calls, 1)

    async def test_stale_detection_discarded_after_stop(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("X")]
            task = scanner.tick()
            scanner.stop()
            await task
            self.assertIsNone(scanner.tick())
        self.assertEqual(self.writes, [])

    async def test_stale_capture_released_after_stop(self):
        async with self._scanner() as scanner:
            self.host.hold_open = asyncio.Event()
            task = asyncio.create_task(scanner.play("cam-1"))
            await asyncio.wait_for(self.host.waiting.wait(), timeout=2.0)
            scanner.stop()
            self.host.hold_open.set()
            self.assertFalse(await task)
            self.assertEqual(len(self.host.opened), 1)
            self.assertFalse(self.host.opened[-1].active)
            self.assertIsNone(scanner.surface.stream)
            self.assertIs(scanner.state, ScannerState.STOPPED)
            self.assertIsNone(scanner.tick())

    async def test_stale_enumeration_discarded_after_stop(self):
        async with self._scanner() as scanner:
            self.host.hold_enum = asyncio.Event()
            task = asyncio.create_task(scanner.start())
            await asyncio.wait_for(self.host.waiting.wait(), timeout=2.0)
            scanner.stop()
            self.host.hold_enum.set()
            self.assertEqual(await task, [])
            self.assertEqual(scanner.devices, [])
            self.assertIs(scanner.state, ScannerState.STOPPED)
            self.assertIsNone(scanner.surface.stream)
            self.assertFalse(any(s.active for s in self.host.opened))

    async def test_failing_result_sink_does_not_break_detection(self):
        def broken(value):
            raise RuntimeError("form is gone")

        scanner = BarcodeScanner(
            self.host, lambda: self.detector, result_sink=broken, config=MANUAL_TICKS
        )
        async with scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("X")]
            task = scanner.tick()
            await task
            self.assertIsNone(task.exception())
            self.assertEqual(scanner.last_result, "X")
            self.assertTrue(scanner.completed.is_set())

    async def test_timer_drives_detection(self):
        scanner = self._scanner(ScannerConfig(interval_ms=5))
        self.detector.results = [_barcode("T")]
        async with scanner:
            await self._started(scanner)
            await asyncio.wait_for(scanner.completed.wait(), timeout=2.0)
        self.assertEqual(self.writes, ["T"])

    async def test_unavailable_detector_disables_start(self):
        self.detector = FakeDetector(formats=())
        async with self._scanner() as scanner:
            self.assertFalse(scanner.available)
            self.assertIs(scanner.state, ScannerState.UNAVAILABLE)
            self.assertEqual(await scanner.start(), [])
        self.assertEqual(self.host.opened, [])
        self.assertEqual(len(self.errors), 1)
        self.assertIsInstance(self.errors[0], CapabilityUnavailable)

    async def test_detector_factory_failure_is_unavailable(self):
        def broken():
            raise OSError("libzbar not found")

        scanner = BarcodeScanner(
            self.host, broken, result_sink=self.writes.append, error_sink=self.errors.append
        )
        self.assertFalse(await scanner.initialize())
        self.assertFalse(await scanner.initialize())
        self.assertEqual(len(self.errors), 1)
        await scanner.close()

    async def test_no_devices_reported(self):
        self.host.devices = []
        async with self._scanner() as scanner:
            self.assertEqual(await scanner.start(), [])
            self.assertIs(scanner.state, ScannerState.IDLE)
        self.assertTrue(self.errors)
        self.assertIsInstance(self.errors[0], DeviceError)

    async def test_capture_failure_keeps_session(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            previous = self.host.opened[-1]
            self.host.fail_open.add("cam-0")
            self.assertFalse(await scanner.change_device("cam-0"))
            self.assertFalse(previous.active)
            self.assertIsInstance(self.errors[-1], DeviceError)
            self.assertTrue(await scanner.change_device("cam-1"))
            await asyncio.wait_for(scanner.surface.loaded.wait(), timeout=2.0)

    async def test_change_device_releases_previous_stream(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            first = self.host.opened[-1]
            self.assertTrue(await scanner.change_device("cam-0"))
            self.assertFalse(first.active)
            self.assertEqual(scanner.device_id, "cam-0")
            active = [s for s in self.host.opened if s.active]
            self.assertEqual(len(active), 1)

    async def test_release_errors_reported_not_raised(self):
        async with self._scanner() as scanner:
            await self._started(scanner)
            for track in self.host.opened[-1].get_tracks():
                track.fail = True
            scanner.stop()
            # The release may finish on the reader thread.
            for _ in range(200):
                if self.errors:
                    break
                await asyncio.sleep(0.01)
        self.assertTrue(any(isinstance(e, DeviceError) for e in self.errors))

    async def test_debug_mode_overlay_and_selection(self):
        overlays = []
        scanner = self._scanner(
            ScannerConfig(interval_ms=60_000, mode="debug"),
            overlay_sink=lambda regions, size: overlays.append((regions, size)),
        )
        async with scanner:
            await self._started(scanner)
            self.detector.results = [_barcode("A"), _barcode("B", x=200)]
            await self._tick(scanner)
            self.assertEqual(self.writes, [])
            self.assertEqual([r.value for r in scanner.regions], ["A", "B"])
            self.assertEqual(overlays[-1][1], (80, 60))
            self.assertEqual(scanner.regions[0].svg_points, "10,10 110,10 110,60 10,60")
            self.assertEqual(scanner.select_at(250, 30), "B")
            self.assertIsNone(scanner.select_at(5, 5))
            self.assertEqual(scanner.select(0), "A")
            self.assertEqual(self.writes, ["B", "A"])
            self.assertFalse(scanner.completed.is_set())
            self.assertIsNotNone(scanner.render_overlay())


if __name__ == "__main__":
    unittest.main()
