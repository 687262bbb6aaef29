from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from common.utils import format_iso8601


def _check_lat_lon(lat: float, lon: float) -> None:
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lon <= 180.0):
        raise ValueError("lat/lon out of range")


@dataclass(frozen=True, slots=True)
class Coordinate:
    """WGS84 point in decimal degrees. Equality is exact on both components."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        _check_lat_lon(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class LocationFix:
    """
    One raw positioning sample as emitted by the sensor service.

    Attributes:
        latitude, longitude: WGS84 degrees.
        altitude: meters above sea level.
        horizontal_accuracy: radius of uncertainty in meters; negative means invalid.
        vertical_accuracy: meters; negative means altitude is invalid.
        course: degrees from true north, negative when unknown.
        speed: m/s, negative when unknown.
        timestamp: timezone-aware time the fix was taken.
    """
    latitude: float
    longitude: float
    altitude: float
    horizontal_accuracy: float
    vertical_accuracy: float
    course: float
    speed: float
    timestamp: datetime

    def __post_init__(self) -> None:
        _check_lat_lon(self.latitude, self.longitude)
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["timestamp"] = format_iso8601(self.timestamp)
        return d


@dataclass(frozen=True, slots=True)
class Placemark:
    """
    Address/administrative data resolved for a coordinate.

    Every text field is optional: geocoders routinely omit street data in rural
    areas or at sea. The display address is derived by
    `location.address.format_address`, never stored.
    """
    coordinate: Coordinate
    thoroughfare: Optional[str] = None
    sub_thoroughfare: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.coordinate.latitude,
            "lon": self.coordinate.longitude,
            "thoroughfare": self.thoroughfare,
            "sub_thoroughfare": self.sub_thoroughfare,
            "locality": self.locality,
            "region": self.region,
            "country": self.country,
        }
