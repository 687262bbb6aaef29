from __future__ import annotations

import csv
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Iterator, Optional

import numpy as np

from common.geo import destination_point
from common.types import LocationFix
from common.utils import format_iso8601, parse_iso8601, utc_now


CSV_HEADER = ["ts", "lat", "lon", "alt_m", "hacc_m", "vacc_m", "course_deg", "speed_mps"]


def fixes_from_csv(path: str, *, rebase_to_now: bool = False) -> Iterator[LocationFix]:
    """
    Replay fixes from a CSV file with columns: ts, lat, lon, alt_m, hacc_m, vacc_m, course_deg, speed_mps.
    Missing optional columns default to -1 (unknown); alt_m defaults to 0.

    rebase_to_now shifts every timestamp so the first row reads "now", keeping
    relative spacing; recorded tracks would otherwise all predate the session.
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"Fix CSV not found: {path}")
    offset: Optional[timedelta] = None
    with open(path, newline="") as f:
        r = csv.DictReader(f)
        for row in r:
            ts = parse_iso8601(row["ts"])
            if rebase_to_now:
                if offset is None:
                    offset = utc_now() - ts
                ts = ts + offset
            yield LocationFix(
                latitude=float(row["lat"]),
                longitude=float(row["lon"]),
                altitude=float(row.get("alt_m") or 0.0),
                horizontal_accuracy=float(row.get("hacc_m") or -1.0),
                vertical_accuracy=float(row.get("vacc_m") or -1.0),
                course=float(row.get("course_deg") or -1.0),
                speed=float(row.get("speed_mps") or -1.0),
                timestamp=ts,
            )


def write_fixes_csv(path: str, fixes: Iterable[LocationFix], max_rows: int = 0) -> int:
    """
    Write fixes to CSV. If max_rows > 0, stops after that many rows. Returns rows written.
    """
    n = 0
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", newline="") as f:
        w = csv.writer(f)
        w.writerow(CSV_HEADER)
        for s in fixes:
            w.writerow([format_iso8601(s.timestamp), f"{s.latitude:.8f}", f"{s.longitude:.8f}",
                        f"{s.altitude:.2f}", f"{s.horizontal_accuracy:.2f}", f"{s.vertical_accuracy:.2f}",
                        f"{s.course:.2f}", f"{s.speed:.3f}"])
            n += 1
            if max_rows > 0 and n >= max_rows:
                break
    return n


@dataclass
class SyntheticFixSource:
    """
    Procedural walker: a noisy random-walk track with the defects real receivers produce.

    Args:
        start_lat, start_lon: track origin (deg)
        rate_hz: fix rate; sets timestamp spacing when live=False
        speed_mps: nominal ground speed
        turn_noise_deg: per-step heading random walk std (deg)
        hacc_mean_m, hacc_noise_m: horizontal accuracy distribution (m), floored at 1 m
        invalid_prob: chance of an invalid fix (horizontal accuracy -1)
        stale_prob: chance of re-emitting an old cached fix (timestamp 10 min back)
        repeat_prob: chance of repeating the previous fix's coordinate
        live: stamp fixes with the wall clock at yield time (for controller sessions);
              otherwise stamp from `start_time` + k / rate_hz
        seed: RNG seed
    """
    start_lat: float = 38.8895
    start_lon: float = -77.0352
    rate_hz: float = 1.0
    speed_mps: float = 1.4
    turn_noise_deg: float = 10.0
    hacc_mean_m: float = 8.0
    hacc_noise_m: float = 3.0
    invalid_prob: float = 0.0
    stale_prob: float = 0.0
    repeat_prob: float = 0.0
    live: bool = True
    start_time: Optional[datetime] = None
    seed: int = 1234

    def __iter__(self) -> Iterator[LocationFix]:
        return self.fixes()

    def fixes(self, count: Optional[int] = None) -> Iterator[LocationFix]:
        rng = np.random.default_rng(self.seed)
        dt = 1.0 / max(1e-6, self.rate_hz)
        t0 = self.start_time or utc_now()
        lat, lon = self.start_lat, self.start_lon
        heading = float(rng.uniform(0.0, 360.0))
        prev: Optional[LocationFix] = None
        k = 0
        while count is None or k < count:
            ts = utc_now() if self.live else t0 + timedelta(seconds=k * dt)
            draw = rng.random()

            if prev is not None and draw < self.stale_prob:
                yield LocationFix(
                    latitude=prev.latitude, longitude=prev.longitude, altitude=prev.altitude,
                    horizontal_accuracy=prev.horizontal_accuracy, vertical_accuracy=prev.vertical_accuracy,
                    course=prev.course, speed=prev.speed, timestamp=ts - timedelta(minutes=10),
                )
                k += 1
                continue

            if prev is None or draw >= self.stale_prob + self.repeat_prob:
                heading = (heading + float(rng.normal(0.0, self.turn_noise_deg))) % 360.0
                step = max(0.0, self.speed_mps + float(rng.normal(0.0, 0.2))) * dt
                lat, lon = destination_point(lat, lon, heading, step)
                speed = step / dt
            else:
                lat, lon = prev.latitude, prev.longitude
                speed = 0.0

            hacc = max(1.0, float(rng.normal(self.hacc_mean_m, self.hacc_noise_m)))
            if rng.random() < self.invalid_prob:
                hacc = -1.0
            fix = LocationFix(
                latitude=lat,
                longitude=lon,
                altitude=float(30.0 + rng.normal(0.0, 1.0)),
                horizontal_accuracy=hacc,
                vertical_accuracy=max(1.0, 1.5 * abs(hacc)),
                course=heading if speed > 0 else -1.0,
                speed=speed,
                timestamp=ts,
            )
            yield fix
            if hacc >= 0:
                prev = fix
            k += 1
