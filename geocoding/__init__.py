"""
Geocoding — coordinate → Placemark

- adapter.py: GeocodingAdapter (single-flight, newest-wins) over two backend
  shapes: PollingBackend (blocking reverse()) and CompletionBackend
  (reverse_geocode(coord, completion)).
- nominatim.py: OpenStreetMap Nominatim service offering both shapes.
"""
from .adapter import CompletionBackend, GeocodingAdapter, PollingBackend, select_backend

__all__ = ["CompletionBackend", "GeocodingAdapter", "PollingBackend", "select_backend"]
