from __future__ import annotations

"""
Location controller: current fix + placemark, fanned out to observers.

Data flow:
    sensor fix -> validator.accept -> state.current_location -> location observers
               -> GeocodingAdapter.submit(coord) -> placemark | error -> geocoder observers

All handlers run on one thread. When the sensor calls back from its own
threads, construct the controller with `loop=` so events are re-posted onto that
asyncio loop with call_soon_threadsafe. Geocoding runs on that loop (or the
running one); with neither, each lookup is reported as a GeocodingError.

Usage:
    ctl = LocationController(sensor, GeocodingAdapter(NominatimService()), loop=asyncio.get_running_loop())
    ctl.add_location_delegate(my_observer)     # replays current_location if any
    ctl.resume_updating_location()
"""

import asyncio
import threading
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from common.errors import GeocodingError, LocationError, SensorError
from common.logging_setup import get_logger
from common.types import Coordinate, LocationFix, Placemark
from common.utils import utc_now
from geocoding.adapter import GeocodingAdapter
from location import validator
from location.config import LocationConfig, coerce_accuracy, coerce_filter, load_config
from location.registry import ObserverRegistry
from location.state import ControllerState
from sensor.base import NullSensorService, SensorListener, SensorService


log = get_logger("location")


@runtime_checkable
class LocationObserver(Protocol):
    def on_location_updated(self, fix: LocationFix) -> None: ...

    def on_location_failed(self, error: LocationError) -> None: ...


@runtime_checkable
class GeocoderObserver(Protocol):
    def on_placemark_updated(self, placemark: Placemark) -> None: ...

    def on_geocoding_failed(self, error: GeocodingError) -> None: ...


def _location_updated(o: LocationObserver, fix: LocationFix) -> None:
    o.on_location_updated(fix)


def _location_failed(o: LocationObserver, error: LocationError) -> None:
    o.on_location_failed(error)


def _placemark_updated(o: GeocoderObserver, placemark: Placemark) -> None:
    o.on_placemark_updated(placemark)


def _geocoding_failed(o: GeocoderObserver, error: GeocodingError) -> None:
    o.on_geocoding_failed(error)


class _LoopFunnel:
    """SensorListener that re-posts sensor callbacks onto the controller's loop."""

    def __init__(self, controller: "LocationController", loop: asyncio.AbstractEventLoop):
        self._controller = controller
        self._loop = loop

    def on_raw_fix(self, fix: LocationFix) -> None:
        self._loop.call_soon_threadsafe(self._controller.on_raw_fix, fix)

    def on_sensor_error(self, error: SensorError) -> None:
        self._loop.call_soon_threadsafe(self._controller.on_sensor_error, error)


class LocationController:
    def __init__(
        self,
        sensor: Optional[SensorService] = None,
        geocoder: Any = None,
        config: Optional[LocationConfig] = None,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Params:
            sensor: positioning service (NullSensorService if omitted)
            geocoder: GeocodingAdapter, or a geocoding service to wrap in one; None disables geocoding
            config: initial configuration (defaults if omitted)
            loop: event loop that owns this controller; enables thread-safe sensor delivery
            clock: returns aware datetimes; stamps session starts
        """
        self._sensor: SensorService = sensor or NullSensorService()
        if geocoder is not None and not isinstance(geocoder, GeocodingAdapter):
            geocoder = GeocodingAdapter(geocoder)
        self._geocoder: Optional[GeocodingAdapter] = geocoder
        self._config = config or LocationConfig()
        self._clock = clock
        self._state = ControllerState()
        self._active = False
        self._loop = loop
        self._listener: SensorListener = _LoopFunnel(self, loop) if loop is not None else self

        self._location_observers: ObserverRegistry[LocationObserver, LocationFix] = ObserverRegistry(
            _location_updated, lambda: self._state.current_location, name="location"
        )
        self._geocoder_observers: ObserverRegistry[GeocoderObserver, Placemark] = ObserverRegistry(
            _placemark_updated, lambda: self._state.current_placemark, name="geocoder"
        )
        self._forward_sensor_settings()

    # ----------------------------
    # State (read-only)
    # ----------------------------
    @property
    def current_location(self) -> Optional[LocationFix]:
        return self._state.current_location

    @property
    def current_placemark(self) -> Optional[Placemark]:
        return self._state.current_placemark

    @property
    def session_start(self) -> Optional[datetime]:
        return self._state.session_start

    @property
    def last_location_error(self) -> Optional[LocationError]:
        return self._state.last_location_error

    @property
    def last_geocoding_error(self) -> Optional[GeocodingError]:
        return self._state.last_geocoding_error

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def config(self) -> LocationConfig:
        return self._config

    # ----------------------------
    # Configuration
    # ----------------------------
    @property
    def desired_accuracy(self) -> float:
        return self._config.desired_accuracy

    @desired_accuracy.setter
    def desired_accuracy(self, value: float) -> None:
        self._config.desired_accuracy = coerce_accuracy(value)
        self._forward_sensor_settings()

    @property
    def distance_filter_m(self) -> float:
        return self._config.distance_filter_m

    @distance_filter_m.setter
    def distance_filter_m(self, value: float) -> None:
        self._config.distance_filter_m = coerce_filter(value, "distance_filter_m")
        self._forward_sensor_settings()

    @property
    def heading_filter_deg(self) -> float:
        return self._config.heading_filter_deg

    @heading_filter_deg.setter
    def heading_filter_deg(self, value: float) -> None:
        self._config.heading_filter_deg = coerce_filter(value, "heading_filter_deg")
        self._forward_sensor_settings()

    @property
    def strict_mode(self) -> bool:
        return self._config.strict_mode

    @strict_mode.setter
    def strict_mode(self, value: bool) -> None:
        self._config.strict_mode = bool(value)

    @property
    def reject_repeated_locations(self) -> bool:
        return self._config.reject_repeated_locations

    @reject_repeated_locations.setter
    def reject_repeated_locations(self, value: bool) -> None:
        self._config.reject_repeated_locations = bool(value)

    # ----------------------------
    # Observers
    # ----------------------------
    def add_location_delegate(self, observer: LocationObserver) -> None:
        self._location_observers.add(observer)

    def remove_location_delegate(self, observer: LocationObserver) -> None:
        self._location_observers.remove(observer)

    def add_geocoder_delegate(self, observer: GeocoderObserver) -> None:
        self._geocoder_observers.add(observer)

    def remove_geocoder_delegate(self, observer: GeocoderObserver) -> None:
        self._geocoder_observers.remove(observer)

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def resume_updating_location(self) -> None:
        if self._active:
            return
        self._state.session_start = self._clock()
        self._state.last_location_error = None
        self._active = True
        self._sensor.start(self._listener)
        log.info("Location updates resumed", extra={"extra": {"session_start": self._state.session_start.isoformat()}})

    def pause_updating_location(self) -> None:
        if not self._active:
            return
        self._sensor.stop()
        self._active = False
        log.info("Location updates paused")

    async def aclose(self) -> None:
        """Pause and drop any in-flight geocoding request."""
        self.pause_updating_location()
        if self._geocoder is not None:
            await self._geocoder.aclose()

    # ----------------------------
    # Sensor callbacks
    # ----------------------------
    def on_raw_fix(self, fix: LocationFix) -> None:
        if not validator.accept(fix, self._state.current_location, self._state.session_start, self._config):
            return
        self._state.current_location = fix
        self._location_observers.notify_all(fix)
        self._submit_geocoding(fix.coordinate)

    def on_sensor_error(self, error: SensorError) -> None:
        log.warning("Sensor error", extra={"extra": {"error": error.message}})
        self._state.last_location_error = error
        self._location_observers.notify_all(error, deliver=_location_failed)

    # ----------------------------
    # Geocoding callbacks
    # ----------------------------
    def on_geocoding_result(self, placemark: Placemark) -> None:
        self._state.current_placemark = placemark
        self._geocoder_observers.notify_all(placemark)

    def on_geocoding_error(self, error: GeocodingError) -> None:
        self._state.last_geocoding_error = error
        self._geocoder_observers.notify_all(error, deliver=_geocoding_failed)

    # ----------------------------
    # internals
    # ----------------------------
    def _submit_geocoding(self, coordinate: Coordinate) -> None:
        if self._geocoder is None:
            return
        try:
            self._geocoder.submit(coordinate, self.on_geocoding_result, self.on_geocoding_error, loop=self._loop)
        except RuntimeError as e:
            # No loop given and none running: report on the geocoding channel.
            self.on_geocoding_error(GeocodingError.wrap(e))

    def _forward_sensor_settings(self) -> None:
        self._sensor.configure(*self._config.sensor_settings())


# ----------------------------
# Shared instance
# ----------------------------
_shared: Optional[LocationController] = None
_shared_lock = threading.Lock()


def shared_controller() -> LocationController:
    """
    Process-wide default controller, built on first use from load_config() with a
    NullSensorService and no geocoder. Inject a real one with set_shared_controller().
    """
    global _shared
    with _shared_lock:
        if _shared is None:
            P = load_config()
            _shared = LocationController(config=LocationConfig.from_dict(P.get("location")))
        return _shared


def set_shared_controller(controller: Optional[LocationController]) -> None:
    """Replace the shared controller; None resets it so the next access rebuilds."""
    global _shared
    with _shared_lock:
        _shared = controller
