"""CLI entry point for the contractor recommendation engine."""

import argparse
import asyncio
import logging
import sqlite3
import sys
from datetime import date, datetime
from pathlib import Path

from pydantic import ValidationError

from dispatch.core.config import Settings
from dispatch.core.db import init_db
from dispatch.core.errors import DispatchError
from dispatch.engine.availability import AvailabilityEngine
from dispatch.engine.orchestrator import RecommendationOrchestrator, export_recommendations_json
from dispatch.providers.base import DistanceProvider
from dispatch.providers.cache import CachedDistanceProvider, SqliteDistanceCache
from dispatch.providers.google_maps import GoogleMapsDistanceProvider
from dispatch.providers.haversine import HaversineDistanceProvider
from dispatch.providers.sqlite import (
    SqliteAssignmentDirectory,
    SqliteContractorDirectory,
    SqliteJobDirectory,
)

DEFAULT_CONFIG = "config/settings.yaml"


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Contractor recommendations - rank contractors for a job",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- recommend ---
    recommend_parser = subparsers.add_parser("recommend", help="Rank contractors for a job")
    recommend_parser.add_argument("--job-id", type=int, required=True)
    recommend_parser.add_argument(
        "--dispatcher-id",
        type=int,
        default=0,
        help="Dispatcher whose curated list is used with --list-only",
    )
    recommend_parser.add_argument(
        "--list-only",
        action="store_true",
        help="Only consider contractors on the dispatcher's curated list",
    )
    recommend_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    _add_common(recommend_parser)

    # --- check ---
    check_parser = subparsers.add_parser(
        "check", help="Check whether a contractor can take a job at a given time",
    )
    check_parser.add_argument("--contractor-id", type=int, required=True)
    check_parser.add_argument(
        "--start",
        type=datetime.fromisoformat,
        required=True,
        help="Desired start, ISO format (e.g. 2026-11-02T10:00)",
    )
    check_parser.add_argument("--duration", type=float, required=True, help="Hours")
    check_parser.add_argument("--travel", type=int, default=0, help="Travel minutes")
    _add_common(check_parser)

    # --- slots ---
    slots_parser = subparsers.add_parser("slots", help="List a contractor's open hours on a date")
    slots_parser.add_argument("--contractor-id", type=int, required=True)
    slots_parser.add_argument(
        "--date",
        type=date.fromisoformat,
        required=True,
        help="Date, YYYY-MM-DD",
    )
    _add_common(slots_parser)

    # --- import-data ---
    import_parser = subparsers.add_parser(
        "import-data", help="Load contractors, jobs, and assignments from YAML",
    )
    import_parser.add_argument("--data", required=True, help="Path to data YAML file")
    _add_common(import_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings; a missing default config falls back to built-in defaults."""
    if path == DEFAULT_CONFIG and not Path(path).exists():
        return Settings()
    return Settings.from_yaml(path)


def build_distance_provider(settings: Settings, conn: sqlite3.Connection) -> DistanceProvider:
    """Google Maps when an API key is configured, haversine otherwise; cached if enabled."""
    provider: DistanceProvider
    if settings.distance.api_key:
        provider = GoogleMapsDistanceProvider(settings.distance)
    else:
        provider = HaversineDistanceProvider()
    if settings.distance.cache_enabled:
        cache = SqliteDistanceCache(conn, settings.distance.cache_ttl_hours)
        provider = CachedDistanceProvider(provider, cache)
    return provider


def build_engine(
    settings: Settings,
    conn: sqlite3.Connection,
    distance: DistanceProvider,
) -> tuple[AvailabilityEngine, RecommendationOrchestrator]:
    contractors = SqliteContractorDirectory(conn)
    availability = AvailabilityEngine(
        contractors, SqliteAssignmentDirectory(conn), settings.availability,
    )
    orchestrator = RecommendationOrchestrator(
        contractors,
        SqliteJobDirectory(conn),
        distance,
        availability,
        settings.recommendations,
    )
    return availability, orchestrator


async def run(args: argparse.Namespace, settings: Settings) -> None:
    conn = init_db(settings.database.path)
    distance = build_distance_provider(settings, conn)
    availability, orchestrator = build_engine(settings, conn, distance)

    try:
        if args.command == "recommend":
            response = await orchestrator.get_recommendations(
                args.job_id, args.dispatcher_id, args.list_only,
            )
            if args.export == "json":
                print(export_recommendations_json(response))
            else:
                print(f"{response.message}: {len(response.recommendations)} recommendations")
                for rank, r in enumerate(response.recommendations, start=1):
                    rating = f"{r.rating:.1f}" if r.rating is not None else "n/a"
                    print(
                        f"  {rank}. {r.name} (#{r.contractor_id}) score={r.score:.2f} "
                        f"rating={rating} ({r.review_count}) "
                        f"distance={r.distance:.1f}mi travel={r.travel_time}m "
                        f"slots={len(r.available_time_slots)}"
                    )
        elif args.command == "check":
            ok = await availability.is_available(
                args.contractor_id, args.start, args.duration, args.travel,
            )
            status = "AVAILABLE" if ok else "UNAVAILABLE"
            print(f"Contractor {args.contractor_id} at {args.start.isoformat()}: {status}")
        elif args.command == "slots":
            slots = await availability.get_available_time_slots(args.contractor_id, args.date)
            print(f"Contractor {args.contractor_id} on {args.date.isoformat()}: {len(slots)} open slots")
            for s in slots:
                print(f"  {s.strftime('%H:%M')}")
    finally:
        await distance.close()
        conn.close()


def cmd_import_data(args: argparse.Namespace, settings: Settings) -> None:
    """Handle import-data subcommand."""
    from dispatch.core.fixtures import import_data

    conn = init_db(settings.database.path)
    try:
        counts = import_data(conn, args.data)
    finally:
        conn.close()
    print(f"Imported into {settings.database.path}:")
    for section, count in counts.items():
        print(f"  {section}: {count}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.config)
    except (FileNotFoundError, ValidationError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "import-data":
            cmd_import_data(args, settings)
        else:
            asyncio.run(run(args, settings))
    except (DispatchError, FileNotFoundError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
