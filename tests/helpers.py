"""
Shared test builders and recording fakes.
"""
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from common.types import Coordinate, LocationFix, Placemark


T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def make_fix(
    t: float = 0.0,
    lat: float = 38.8895,
    lon: float = -77.0352,
    hacc: float = 5.0,
    **kw: Any,
) -> LocationFix:
    return LocationFix(
        latitude=lat,
        longitude=lon,
        altitude=kw.get("alt", 30.0),
        horizontal_accuracy=hacc,
        vertical_accuracy=kw.get("vacc", 8.0),
        course=kw.get("course", -1.0),
        speed=kw.get("speed", -1.0),
        timestamp=kw.get("timestamp", at(t)),
    )


def make_placemark(lat: float = 38.8895, lon: float = -77.0352, street: Optional[str] = "Main St",
                   number: Optional[str] = "42") -> Placemark:
    return Placemark(
        coordinate=Coordinate(lat, lon),
        thoroughfare=street,
        sub_thoroughfare=number,
        locality="Washington",
        region="District of Columbia",
        country="United States",
    )


class Clock:
    """Settable clock for session starts."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class Recorder:
    """Location + geocoder observer that records every callback in order."""

    def __init__(self, name: str = "obs"):
        self.name = name
        self.events: List[Tuple[str, Any]] = []

    def on_location_updated(self, fix):
        self.events.append(("location", fix))

    def on_location_failed(self, error):
        self.events.append(("location_failed", error))

    def on_placemark_updated(self, placemark):
        self.events.append(("placemark", placemark))

    def on_geocoding_failed(self, error):
        self.events.append(("geocoding_failed", error))

    def of(self, kind: str) -> List[Any]:
        return [v for k, v in self.events if k == kind]

    def __repr__(self) -> str:
        return f"Recorder({self.name})"


class FakeSensor:
    """SensorService whose events are pushed by the test, synchronously."""

    def __init__(self):
        self.settings = None
        self.configure_calls = 0
        self.starts = 0
        self.stops = 0
        self.listener = None

    def configure(self, desired_accuracy, distance_filter_m, heading_filter_deg):
        self.settings = (desired_accuracy, distance_filter_m, heading_filter_deg)
        self.configure_calls += 1

    def start(self, listener):
        self.starts += 1
        self.listener = listener

    def stop(self):
        self.stops += 1

    def emit(self, fix):
        self.listener.on_raw_fix(fix)

    def fail(self, error):
        self.listener.on_sensor_error(error)


class ManualCompletionService:
    """
    Completion-shaped geocoder; requests stay pending until the test completes them.
    """

    class Handle:
        def __init__(self, coordinate, completion):
            self.coordinate = coordinate
            self.completion = completion
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.requests: List["ManualCompletionService.Handle"] = []

    def reverse_geocode(self, coordinate: Coordinate, completion: Callable) -> "ManualCompletionService.Handle":
        h = self.Handle(coordinate, completion)
        self.requests.append(h)
        return h

    def complete(self, index: int, placemark=None, error=None) -> None:
        h = self.requests[index]
        if placemark is None and error is None:
            placemark = make_placemark(h.coordinate.latitude, h.coordinate.longitude)
        h.completion(placemark, error)


class GatedPollingService:
    """
    Polling-shaped geocoder; reverse() blocks until the coordinate's gate is opened.
    Ungated coordinates resolve immediately.
    """

    def __init__(self):
        self.gates: Dict[Tuple[float, float], threading.Event] = {}
        self.calls: List[Tuple[float, float]] = []
        self.fail_for: Dict[Tuple[float, float], Exception] = {}

    def gate(self, lat: float, lon: float) -> threading.Event:
        ev = threading.Event()
        self.gates[(lat, lon)] = ev
        return ev

    def reverse(self, latitude: float, longitude: float) -> Placemark:
        self.calls.append((latitude, longitude))
        ev = self.gates.get((latitude, longitude))
        if ev is not None:
            ev.wait(5.0)
        err = self.fail_for.get((latitude, longitude))
        if err is not None:
            raise err
        return make_placemark(latitude, longitude)
