from __future__ import annotations

import threading
from typing import Iterable, Iterator, Optional, Tuple, Union

from common.errors import SensorError
from common.geo import haversine_m
from common.logging_setup import get_logger
from common.types import LocationFix
from sensor.base import SensorListener


log = get_logger("sensor")

SensorItem = Union[LocationFix, SensorError]


class SimulatedSensorService:
    """
    Positioning service backed by an iterable of fixes (and SensorError items).

    Items are emitted from a daemon worker thread between start() and stop(); a
    later start() continues where the previous session stopped. The forwarded
    distance filter is applied here the way a receiver would: a fix closer than
    `distance_filter_m` to the last emitted one is suppressed unless its
    horizontal accuracy improved. Heading filter is stored only (no compass).
    """

    def __init__(self, source: Iterable[SensorItem], *, rate_hz: Optional[float] = None):
        self._it: Iterator[SensorItem] = iter(source)
        self._period = None if not rate_hz else 1.0 / float(rate_hz)
        self._lock = threading.Lock()
        self._settings: Tuple[float, float, float] = (-1.0, -1.0, 1.0)
        self._stop = threading.Event()
        self._exhausted = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_emitted: Optional[LocationFix] = None
        self.emitted = 0
        self.suppressed = 0

    # -------- SensorService --------

    def configure(self, desired_accuracy: float, distance_filter_m: float, heading_filter_deg: float) -> None:
        with self._lock:
            self._settings = (float(desired_accuracy), float(distance_filter_m), float(heading_filter_deg))

    @property
    def settings(self) -> Tuple[float, float, float]:
        with self._lock:
            return self._settings

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, listener: SensorListener) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, args=(listener,), name="sensor-sim", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=1.0)
        self._thread = None

    def wait_exhausted(self, timeout: Optional[float] = None) -> bool:
        """Block until the source has no more items (True) or timeout (False)."""
        return self._exhausted.wait(timeout)

    # -------- worker --------

    def _run(self, listener: SensorListener) -> None:
        while not self._stop.is_set():
            try:
                item = next(self._it)
            except StopIteration:
                self._exhausted.set()
                log.info("Sensor source exhausted", extra={"extra": {"emitted": self.emitted,
                                                                     "suppressed": self.suppressed}})
                return
            if isinstance(item, SensorError):
                listener.on_sensor_error(item)
            elif self._passes_distance_filter(item):
                self._last_emitted = item
                self.emitted += 1
                listener.on_raw_fix(item)
            else:
                self.suppressed += 1
            if self._period:
                self._stop.wait(self._period)

    def _passes_distance_filter(self, fix: LocationFix) -> bool:
        _, distance_filter_m, _ = self.settings
        last = self._last_emitted
        if distance_filter_m <= 0 or last is None or fix.horizontal_accuracy < 0:
            return True
        if 0 <= fix.horizontal_accuracy < last.horizontal_accuracy:
            return True
        return haversine_m(last.latitude, last.longitude, fix.latitude, fix.longitude) >= distance_filter_m
