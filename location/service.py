from __future__ import annotations

"""
Replay service: drive a LocationController from a recorded or synthetic track
and log every observer event as JSON lines.

Examples:
  # 60 synthetic fixes at the configured rate, no geocoding
  python -m location.service --config config/params.yaml --synthetic 60

  # Replay a recorded CSV (timestamps rebased to now) with Nominatim lookups
  python -m location.service --fixes data/tracks/walk.csv --geocoder nominatim --duration 120
"""

import argparse
import asyncio
from typing import Any, Dict, Iterable, Optional

from common.errors import GeocodingError, LocationError
from common.logging_setup import get_logger, setup_logging
from common.types import LocationFix, Placemark
from geocoding.adapter import GeocodingAdapter
from geocoding.nominatim import NominatimService, NominatimSettings
from location.address import format_address
from location.config import LocationConfig, load_config
from location.controller import LocationController
from sensor.simulated import SensorItem, SimulatedSensorService
from sensor.sources import SyntheticFixSource, fixes_from_csv


log = get_logger("location.service")


class JsonLinesObserver:
    """Location + geocoder observer that logs each event and keeps counts."""

    def __init__(self) -> None:
        self.locations = 0
        self.placemarks = 0
        self.location_errors = 0
        self.geocoding_errors = 0

    def on_location_updated(self, fix: LocationFix) -> None:
        self.locations += 1
        log.info("location", extra={"extra": fix.to_dict()})

    def on_location_failed(self, error: LocationError) -> None:
        self.location_errors += 1
        log.warning("location_failed", extra={"extra": {"error": error.message}})

    def on_placemark_updated(self, placemark: Placemark) -> None:
        self.placemarks += 1
        log.info("placemark", extra={"extra": {**placemark.to_dict(), "address": format_address(placemark)}})

    def on_geocoding_failed(self, error: GeocodingError) -> None:
        self.geocoding_errors += 1
        log.warning("geocoding_failed", extra={"extra": {"error": error.message}})

    def summary(self) -> Dict[str, int]:
        return {
            "locations": self.locations,
            "placemarks": self.placemarks,
            "location_errors": self.location_errors,
            "geocoding_errors": self.geocoding_errors,
        }


def build_geocoder(P: Dict[str, Any], provider: Optional[str] = None) -> Optional[GeocodingAdapter]:
    G = P.get("geocoding", {})
    name = (provider or G.get("provider") or "none").lower()
    if name == "none":
        return None
    if name == "nominatim":
        svc = NominatimService(NominatimSettings.from_dict(G.get("nominatim")))
        return GeocodingAdapter(svc, strategy=str(G.get("strategy", "auto")))
    raise ValueError(f"unknown geocoding provider: {name!r}")


def build_source(P: Dict[str, Any], fixes_csv: Optional[str], synthetic: int) -> Iterable[SensorItem]:
    if fixes_csv:
        return fixes_from_csv(fixes_csv, rebase_to_now=True)
    S = P.get("sensor", {})
    src = SyntheticFixSource(
        start_lat=float(S.get("start_lat", 38.8895)),
        start_lon=float(S.get("start_lon", -77.0352)),
        rate_hz=float(S.get("rate_hz", 1.0)),
        speed_mps=float(S.get("speed_mps", 1.4)),
        invalid_prob=float(S.get("invalid_prob", 0.0)),
        stale_prob=float(S.get("stale_prob", 0.0)),
        repeat_prob=float(S.get("repeat_prob", 0.0)),
        seed=int(S.get("seed", 1234)),
    )
    return src.fixes(synthetic)


async def run(
    P: Dict[str, Any],
    *,
    fixes_csv: Optional[str] = None,
    synthetic: int = 60,
    provider: Optional[str] = None,
    duration: Optional[float] = None,
    settle_s: float = 5.0,
) -> JsonLinesObserver:
    """Run one session until the source is exhausted or `duration` elapses."""
    loop = asyncio.get_running_loop()
    S = P.get("sensor", {})
    rate = float(S.get("rate_hz", 1.0)) if S.get("realtime", True) else None

    sensor = SimulatedSensorService(build_source(P, fixes_csv, synthetic), rate_hz=rate)
    geocoder = build_geocoder(P, provider)
    ctl = LocationController(sensor, geocoder, LocationConfig.from_dict(P.get("location")), loop=loop)

    obs = JsonLinesObserver()
    ctl.add_location_delegate(obs)
    ctl.add_geocoder_delegate(obs)

    ctl.resume_updating_location()
    try:
        stop_at = None if duration is None else loop.time() + duration
        while not sensor.wait_exhausted(0):
            if stop_at is not None and loop.time() >= stop_at:
                log.info("Duration elapsed", extra={"extra": {"duration_s": duration}})
                break
            await asyncio.sleep(0.1)
        await asyncio.sleep(0.05)  # drain callbacks posted by the sensor thread
        deadline = loop.time() + settle_s
        while geocoder is not None and geocoder.in_flight and loop.time() < deadline:
            await asyncio.sleep(0.1)
    finally:
        await ctl.aclose()

    log.info("Session finished", extra={"extra": {**obs.summary(), "emitted": sensor.emitted,
                                                  "suppressed": sensor.suppressed}})
    return obs


def main() -> None:
    ap = argparse.ArgumentParser(description="Location controller replay service")
    ap.add_argument("--config", default=None, help="YAML parameters (default config/params.yaml)")
    gsrc = ap.add_mutually_exclusive_group()
    gsrc.add_argument("--fixes", help="CSV track to replay (ts, lat, lon, alt_m, hacc_m, ...)")
    gsrc.add_argument("--synthetic", type=int, default=60, help="Number of synthetic fixes")
    ap.add_argument("--geocoder", choices=["nominatim", "none"], default=None, help="Override geocoding.provider")
    ap.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    ap.add_argument("--settle", type=float, default=5.0, help="Wait up to N s for a pending geocode at the end")
    args = ap.parse_args()

    P = load_config(args.config)
    setup_logging(P.get("logging", {}).get("level", "INFO"), force=True)

    try:
        obs = asyncio.run(
            run(P, fixes_csv=args.fixes, synthetic=args.synthetic, provider=args.geocoder,
                duration=args.duration, settle_s=args.settle)
        )
    except KeyboardInterrupt:
        return
    print(f"Replay finished: {obs.summary()}")


if __name__ == "__main__":
    main()
