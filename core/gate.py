import logging
import time
from typing import Callable

L = logging.getLogger("media_scan.gate")


class DetectionGate:
	"""Duplicate suppression: the same value is ignored for ``cooldown_ms``
	after its last acceptance. A different value is accepted immediately.

	Only touched from the event loop, so there is no lock.
	"""

	def __init__(self, cooldown_ms: float = 1000.0, clock: Callable[[], float] = time.monotonic):
		self.cooldown_ms = max(float(cooldown_ms), 0.0)
		self._clock = clock
		self.last_value: str | None = None
		self.last_accept_ts = 0.0

	def accept(self, value: str) -> bool:
		now = self._clock()
		if (
			self.last_value is not None
			and value == self.last_value
			and (now - self.last_accept_ts) * 1000 < self.cooldown_ms
		):
			L.debug("Cooldown drop value=%s", value)
			return False
		self.last_value = value
		self.last_accept_ts = now
		return True

	def in_cooldown(self) -> bool:
		if self.last_value is None:
			return False
		return (self._clock() - self.last_accept_ts) * 1000 < self.cooldown_ms

	def reset(self):
		self.last_value = None
		self.last_accept_ts = 0.0


__all__ = ["DetectionGate"]
