"""
Sensor — positioning service collaborators (sim/replay)

Provides:
- SensorService / SensorListener protocols the controller talks to
- NullSensorService: never emits (shared-controller default)
- SimulatedSensorService: emits an iterable of fixes on a worker thread,
  honouring the forwarded distance filter
- Fix sources:
    - fixes_from_csv: replay a recorded track (ts, lat, lon, alt_m, hacc_m, ...)
    - SyntheticFixSource: random-walk track with invalid/stale/repeated fixes

Usage examples:
    from sensor import SimulatedSensorService, SyntheticFixSource
    sensor = SimulatedSensorService(SyntheticFixSource(invalid_prob=0.1), rate_hz=5)
"""
from .base import NullSensorService, SensorListener, SensorService
from .simulated import SimulatedSensorService
from .sources import SyntheticFixSource, fixes_from_csv, write_fixes_csv

__all__ = [
    "NullSensorService",
    "SensorListener",
    "SensorService",
    "SimulatedSensorService",
    "SyntheticFixSource",
    "fixes_from_csv",
    "write_fixes_csv",
]
