"""Error values carried on the location and geocoding channels.

    LocationError (base)
    ├── SensorError    - reported by the positioning service
    └── GeocodingError - reported by (or on behalf of) a reverse geocoder

These are recorded in controller state and forwarded to observers; they are
raised only inside collaborators (e.g. an HTTP backend) and converted to values
before they reach the controller.
"""

from __future__ import annotations

from typing import Optional


class LocationError(Exception):
    """Base class for errors surfaced by this package.

    Attributes:
        message: Human-readable description.
        cause: Underlying exception, if any.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class SensorError(LocationError):
    """The positioning service could not deliver a fix (denied, no signal, ...)."""


class GeocodingError(LocationError):
    """A reverse-geocoding request failed or returned nothing usable."""

    @classmethod
    def wrap(cls, exc: BaseException) -> "GeocodingError":
        if isinstance(exc, GeocodingError):
            return exc
        return cls(f"{type(exc).__name__}: {exc}", cause=exc)
