#!/usr/bin/env python3
"""
Write a synthetic fix track to CSV for `python -m location.service --fixes ...`.

Example:
  python scripts/generate_sample_fixes.py --n 300 --rate 1 --invalid 0.05 --out data/tracks/walk.csv
"""
from __future__ import annotations

import argparse
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from common.utils import parse_iso8601
from sensor.sources import SyntheticFixSource, write_fixes_csv


def main() -> None:
    ap = argparse.ArgumentParser(description="Generate a synthetic fix CSV")
    ap.add_argument("--n", type=int, default=300, help="Number of fixes")
    ap.add_argument("--rate", type=float, default=1.0, help="Fix rate (Hz) for timestamp spacing")
    ap.add_argument("--lat", type=float, default=38.8895)
    ap.add_argument("--lon", type=float, default=-77.0352)
    ap.add_argument("--speed", type=float, default=1.4, help="Walking speed m/s")
    ap.add_argument("--invalid", type=float, default=0.0, help="Probability of an invalid (-1 accuracy) fix")
    ap.add_argument("--stale", type=float, default=0.0, help="Probability of a stale cached fix")
    ap.add_argument("--repeat", type=float, default=0.0, help="Probability of a repeated coordinate")
    ap.add_argument("--start", default=None, help="ISO-8601 time of the first fix (default now)")
    ap.add_argument("--seed", type=int, default=1234)
    ap.add_argument("--out", default="data/tracks/sample.csv")
    args = ap.parse_args()

    src = SyntheticFixSource(
        start_lat=args.lat,
        start_lon=args.lon,
        rate_hz=args.rate,
        speed_mps=args.speed,
        invalid_prob=args.invalid,
        stale_prob=args.stale,
        repeat_prob=args.repeat,
        live=False,
        start_time=parse_iso8601(args.start) if args.start else None,
        seed=args.seed,
    )
    n = write_fixes_csv(args.out, src.fixes(args.n))
    print(f"Wrote {n} fixes -> {args.out}")


if __name__ == "__main__":
    main()
