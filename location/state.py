from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from common.errors import GeocodingError, LocationError
from common.types import LocationFix, Placemark


@dataclass(slots=True)
class ControllerState:
    """
    Authoritative controller snapshot; replay-on-join reads from here.

    Attributes:
        current_location: last fix that passed validation since construction.
        current_placemark: last placemark delivered for the latest submitted fix.
        session_start: time of the most recent resume; never cleared by pause.
        last_location_error / last_geocoding_error: last-error-wins, left stale
            after later successes.
    """
    current_location: Optional[LocationFix] = None
    current_placemark: Optional[Placemark] = None
    session_start: Optional[datetime] = None
    last_location_error: Optional[LocationError] = None
    last_geocoding_error: Optional[GeocodingError] = None
