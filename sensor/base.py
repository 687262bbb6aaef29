from __future__ import annotations

from typing import Protocol, runtime_checkable

from common.errors import SensorError
from common.types import LocationFix


@runtime_checkable
class SensorListener(Protocol):
    """Receiver of positioning events (the controller, or its thread-safe funnel)."""

    def on_raw_fix(self, fix: LocationFix) -> None: ...

    def on_sensor_error(self, error: SensorError) -> None: ...


@runtime_checkable
class SensorService(Protocol):
    """
    External positioning service.

    configure() values are hints for the service's own pre-filtering and power
    management; start/stop are fire-and-forget.
    """

    def configure(self, desired_accuracy: float, distance_filter_m: float, heading_filter_deg: float) -> None: ...

    def start(self, listener: SensorListener) -> None: ...

    def stop(self) -> None: ...


class NullSensorService:
    """Accepts every call and never emits. Default for the shared controller."""

    def __init__(self) -> None:
        self.settings = None
        self.running = False

    def configure(self, desired_accuracy: float, distance_filter_m: float, heading_filter_deg: float) -> None:
        self.settings = (desired_accuracy, distance_filter_m, heading_filter_deg)

    def start(self, listener: SensorListener) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False
