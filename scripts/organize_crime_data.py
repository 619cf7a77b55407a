#!/usr/bin/env python3
"""
Organize a raw crime-statistics export into the flat normalized table.

The government exports interleave city names, "Crime Head" year headers,
section banners and tab-delimited count rows. This script runs the same
tokenize → parse → store pipeline the API uses and writes the result as
City,Crime_Type,Year,Count (CSV) or into a SQLite table (.db suffix).

Usage:
  python scripts/organize_crime_data.py organize datasets/crime-data-raw.txt
  python scripts/organize_crime_data.py organize raw.txt --out datasets/crime.db --merge
  python scripts/organize_crime_data.py summary
  python scripts/organize_crime_data.py zone 11.2588 75.7804 --address "Kozhikode, Kerala"
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from city_registry import load_registry  # noqa: E402
from config import CITY_COORDS_PATH, CRIME_SOURCE_PATH, CRIME_STORE_PATH  # noqa: E402
from crime_store import NormalizedStore  # noqa: E402
from ingest import ingest_file, load_persisted  # noqa: E402
from scoring import build_all_profiles  # noqa: E402
from zone_resolver import RegistryEmptyError, resolve_zone  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("safenet.organize")


def _load_store(path: Path) -> NormalizedStore:
    store = NormalizedStore()
    if not load_persisted(path, store):
        logger.error(f"No normalized table at {path}; run 'organize' first")
        sys.exit(1)
    return store


def cmd_organize(args):
    store = NormalizedStore()
    out = Path(args.out)
    if args.merge:
        load_persisted(out, store)
    report = ingest_file(Path(args.source), store, merge=args.merge, persist_path=out)

    print(f"Source:         {report.source}")
    print(f"Lines seen:     {report.lines_seen}")
    print(f"Records parsed: {report.records} ({report.cities} cities)")
    print(f"Dropped lines:  {report.dropped_lines}  (column pairs: {report.dropped_pairs})")
    print(f"Written:        {report.persisted} rows → {out}")
    for w in report.warnings:
        print(f"  ! {w}")
    if not report.swapped:
        sys.exit(2)


def cmd_summary(args):
    store = _load_store(Path(args.store))
    profiles = build_all_profiles(store.snapshot(), top_n=args.top)
    print(f"{'City':<22}{'Level':<10}{'Score':>8}{'Recent':>10}  Trend")
    print("-" * 64)
    for p in profiles:
        trend = f"{p.trend.direction.value} {p.trend.percentage:+.1f}%"
        print(f"{p.city:<22}{p.level.value:<10}{p.score:>8.1f}{p.recent_crimes:>10,}  {trend}")
        for c in p.top_crimes:
            print(f"    {c.count:>8,}  {c.type}")
    print(f"\n{len(profiles)} cities")


def cmd_zone(args):
    store = _load_store(Path(args.store))
    try:
        zone = resolve_zone(store.snapshot(), load_registry(CITY_COORDS_PATH),
                            args.lat, args.lng, args.address, max_radius_km=args.radius)
    except RegistryEmptyError as e:
        logger.error(str(e))
        sys.exit(1)
    if zone is None:
        print("No known city near this location")
        sys.exit(3)
    where = "by address" if zone.distance_km is None else f"{zone.distance_km:.2f} km"
    print(f"{zone.city} ({where}): {zone.alert}")


def main():
    parser = argparse.ArgumentParser(
        description="Normalize raw crime-statistics exports and inspect city risk",
    )
    sub = parser.add_subparsers(dest="command")

    p_org = sub.add_parser("organize", help="Parse a raw export into the normalized table")
    p_org.add_argument("source", nargs="?", default=str(CRIME_SOURCE_PATH),
                       help="Raw tab-delimited export")
    p_org.add_argument("--out", default=str(CRIME_STORE_PATH),
                       help="Output table (.csv, or .db for SQLite)")
    p_org.add_argument("--merge", action="store_true",
                       help="Upsert into the existing table instead of replacing it")
    p_org.set_defaults(func=cmd_organize)

    p_sum = sub.add_parser("summary", help="Print every city's risk profile")
    p_sum.add_argument("--store", default=str(CRIME_STORE_PATH))
    p_sum.add_argument("--top", type=int, default=3, help="Top crime types per city")
    p_sum.set_defaults(func=cmd_summary)

    p_zone = sub.add_parser("zone", help="Resolve a coordinate to a zone alert")
    p_zone.add_argument("lat", type=float)
    p_zone.add_argument("lng", type=float)
    p_zone.add_argument("--address", default="")
    p_zone.add_argument("--radius", type=float, default=None, help="Max match radius in km")
    p_zone.add_argument("--store", default=str(CRIME_STORE_PATH))
    p_zone.set_defaults(func=cmd_zone)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)
    args.func(args)


if __name__ == "__main__":
    main()
