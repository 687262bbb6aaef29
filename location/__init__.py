"""
Location — fix filtering, current state and observer fan-out

- config.py: LocationConfig + YAML loader (config/params.yaml)
- validator.py: accept/reject raw fixes (strict mode, repeated locations)
- registry.py: ObserverRegistry (replay-on-join, deferred mutation during delivery)
- address.py: format_address(placemark)
- controller.py: LocationController, shared_controller()
- service.py: replay runner (python -m location.service)
"""
from .address import format_address
from .config import LocationConfig, load_config
from .controller import (
    GeocoderObserver,
    LocationController,
    LocationObserver,
    set_shared_controller,
    shared_controller,
)
from .registry import ObserverRegistry

__all__ = [
    "GeocoderObserver",
    "LocationConfig",
    "LocationController",
    "LocationObserver",
    "ObserverRegistry",
    "format_address",
    "load_config",
    "set_shared_controller",
    "shared_controller",
]
