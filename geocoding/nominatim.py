from __future__ import annotations

"""
OpenStreetMap Nominatim reverse geocoder.

Usage policy: Nominatim is rate-limited (max ~1 req/s) and requires a
descriptive User-Agent. `min_interval_s` throttles consecutive requests from
one service instance.

Exposes both service shapes understood by geocoding.adapter:
    svc = NominatimService(NominatimSettings(user_agent="my-app/1.0 (me@example.com)"))
    pm = svc.reverse(38.8895, -77.0352)                    # blocking, raises GeocodingError
    handle = svc.reverse_geocode(coord, completion)        # background thread, cancellable
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from common.errors import GeocodingError
from common.logging_setup import get_logger
from common.types import Coordinate, Placemark


log = get_logger("geocoding.nominatim")

Completion = Callable[[Optional[Placemark], Optional[BaseException]], None]

_THOROUGHFARE_KEYS = ("road", "pedestrian", "footway", "path", "cycleway")
_LOCALITY_KEYS = ("city", "town", "village", "hamlet", "municipality")


@dataclass(frozen=True, slots=True)
class NominatimSettings:
    base_url: str = "https://nominatim.openstreetmap.org/reverse"
    user_agent: str = "location-controller/0.1 (reverse-geocode; set your own UA)"
    accept_language: str = "en"
    zoom: int = 18
    timeout_s: float = 10.0
    min_interval_s: float = 1.0

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> "NominatimSettings":
        s = section or {}
        d = cls()
        return cls(
            base_url=str(s.get("base_url", d.base_url)),
            user_agent=str(s.get("user_agent", d.user_agent)),
            accept_language=str(s.get("accept_language", d.accept_language)),
            zoom=int(s.get("zoom", d.zoom)),
            timeout_s=float(s.get("timeout_s", d.timeout_s)),
            min_interval_s=float(s.get("min_interval_s", d.min_interval_s)),
        )


def _first(address: Dict[str, Any], keys) -> Optional[str]:
    for k in keys:
        v = address.get(k)
        if v:
            return str(v)
    return None


def placemark_from_nominatim(raw: Dict[str, Any], coordinate: Coordinate) -> Placemark:
    """
    Map a jsonv2 reverse response onto a Placemark.
    The queried coordinate is kept (not the OSM object's centroid).
    """
    address = raw.get("address") or {}
    return Placemark(
        coordinate=coordinate,
        thoroughfare=_first(address, _THOROUGHFARE_KEYS),
        sub_thoroughfare=_first(address, ("house_number",)),
        locality=_first(address, _LOCALITY_KEYS),
        region=_first(address, ("state", "province", "region")),
        country=_first(address, ("country",)),
    )


class _Request:
    """Handle returned by reverse_geocode(); cancel() suppresses the completion."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class NominatimService:
    def __init__(self, settings: Optional[NominatimSettings] = None, session: Optional[requests.Session] = None):
        """
        Params:
            settings: endpoint/throttling parameters (defaults to the public instance)
            session: optional requests.Session for connection reuse
        """
        self.settings = settings or NominatimSettings()
        self.session = session or requests.Session()
        self._throttle_lock = threading.Lock()
        self._last_request_at: Optional[float] = None

    # ----------------------------
    # Polling shape
    # ----------------------------
    def reverse(self, latitude: float, longitude: float) -> Placemark:
        """Blocking lookup. Raises GeocodingError on HTTP/network/decode failure or no result."""
        coordinate = Coordinate(latitude, longitude)
        raw = self._fetch(coordinate)
        if "error" in raw:
            raise GeocodingError(f"nominatim: {raw['error']}")
        return placemark_from_nominatim(raw, coordinate)

    # ----------------------------
    # Completion shape
    # ----------------------------
    def reverse_geocode(self, coordinate: Coordinate, completion: Completion) -> _Request:
        """Run reverse() on a daemon thread; `completion(placemark, error)` unless cancelled."""
        req = _Request()

        def _work() -> None:
            placemark: Optional[Placemark] = None
            error: Optional[BaseException] = None
            try:
                placemark = self.reverse(coordinate.latitude, coordinate.longitude)
            except Exception as e:  # noqa: BLE001 - handed to completion
                error = e
            if not req.cancelled:
                completion(placemark, error)

        req.thread = threading.Thread(target=_work, name="nominatim-reverse", daemon=True)
        req.thread.start()
        return req

    # ----------------------------
    # HTTP
    # ----------------------------
    def build_params(self, coordinate: Coordinate) -> Dict[str, str]:
        return {
            "format": "jsonv2",
            "lat": f"{coordinate.latitude:.8f}",
            "lon": f"{coordinate.longitude:.8f}",
            "zoom": str(self.settings.zoom),
            "addressdetails": "1",
            "accept-language": self.settings.accept_language,
        }

    def _fetch(self, coordinate: Coordinate) -> Dict[str, Any]:
        self._sleep_if_needed()
        try:
            r = self.session.get(
                self.settings.base_url,
                params=self.build_params(coordinate),
                headers={"User-Agent": self.settings.user_agent, "Accept": "application/json"},
                timeout=self.settings.timeout_s,
            )
        except requests.RequestException as e:
            log.warning("Nominatim request failed: %s", e)
            raise GeocodingError(f"nominatim request failed: {e}", cause=e) from e
        if r.status_code != 200:
            log.warning("Nominatim HTTP %s: %s", r.status_code, r.text[:200])
            raise GeocodingError(f"nominatim HTTP {r.status_code}")
        try:
            raw = r.json()
        except ValueError as e:
            raise GeocodingError("nominatim returned invalid JSON", cause=e) from e
        if not isinstance(raw, dict):
            raise GeocodingError("nominatim returned an unexpected payload")
        return raw

    def _sleep_if_needed(self) -> None:
        with self._throttle_lock:
            if self._last_request_at is not None:
                wait = self.settings.min_interval_s - (time.monotonic() - self._last_request_at)
                if wait > 0:
                    time.sleep(wait)
            self._last_request_at = time.monotonic()
