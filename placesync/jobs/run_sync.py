"""CLI entrypoint: sync, verify, stats and health commands."""

import argparse
import logging
from contextlib import closing
from typing import Callable, Dict, List, Optional, Sequence

from placesync.core.alerts import send_alert
from placesync.core.config import ConfigError, Settings, get_settings, require_api_key
from placesync.core.db import ListingStore, open_store
from placesync.core.log import configure_logging
from placesync.jobs.health import run_checks
from placesync.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

STATS_STALE_DAYS = 7
STATS_STALE_PREVIEW = 10


def _print_table(headers: Sequence[str], rows: List[Sequence[object]]) -> None:
    cells = [[str(value) for value in row] for row in [headers, *rows]]
    widths = [max(len(row[i]) for row in cells) for i in range(len(headers))]
    for index, row in enumerate(cells):
        print("  ".join(value.ljust(width) for value, width in zip(row, widths)))
        if index == 0:
            print("  ".join("-" * width for width in widths))


def build_engine(settings: Settings, store: Optional[ListingStore] = None) -> SyncEngine:
    require_api_key(settings)
    return SyncEngine(store or open_store(settings.database_url), settings=settings)


def cmd_sync(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.sync_enabled and not args.force:
        logger.warning("Sync is disabled in configuration. Use --force to override.")
        return 1
    if args.dry_run:
        print("Running in DRY-RUN mode - no changes will be made")

    with closing(build_engine(settings)) as engine:
        stats = engine.sync(dry_run=args.dry_run)

    _print_table(
        ["Metric", "Value"],
        [
            ["Discovered", stats.discovered],
            ["Details Fetched", stats.detailed],
            ["Transformed", stats.transformed],
            ["Imported", stats.imported],
            ["Errors", stats.errors],
            ["Stale Listings", stats.stale],
            ["Duration", f"{stats.duration}s"],
        ],
    )
    print()
    _print_table(
        ["Database Stats", "Count"],
        [
            ["Total Listings", stats.total or 0],
            ["Active", stats.active or 0],
            ["Inactive", stats.inactive or 0],
            ["Average Rating", stats.avg_rating or 0],
        ],
    )
    if stats.errors:
        print(f"Completed with {stats.errors} errors. Check logs for details.")
    else:
        print("Sync completed successfully!")
    return 0


def cmd_verify(args: argparse.Namespace, settings: Settings) -> int:
    with closing(build_engine(settings)) as engine:
        result = engine.verify_restaurant(args.place_id)
    if not result.success:
        print(f"Verification failed: {result.error}")
        return 1
    print(f"Listing verified: {result.name}")
    _print_table(["Field", "Value"], [["ID", result.id], ["Name", result.name], ["Place ID", result.place_id]])
    return 0


def cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    with open_store(settings.database_url) as store:
        stats = store.get_stats()
        stale = store.get_stale(STATS_STALE_DAYS)

    _print_table(
        ["Metric", "Value"],
        [
            ["Total Listings", stats["total"]],
            ["Active Listings", stats["active"]],
            ["Inactive Listings", stats["inactive"]],
            ["Average Rating", stats["avg_rating"]],
        ],
    )

    if not stale:
        print("All listings recently verified!")
        return 0

    print(f"\n{len(stale)} listings not verified in {STATS_STALE_DAYS}+ days")
    _print_table(
        ["Name", "Last Verified", "Active"],
        [
            [listing.name, listing.last_verified or "Never", "Yes" if listing.active else "No"]
            for listing in stale[:STATS_STALE_PREVIEW]
        ],
    )
    if len(stale) > STATS_STALE_PREVIEW:
        print(f"Showing first {STATS_STALE_PREVIEW} of {len(stale)} stale listings")
    return 0


def cmd_health(args: argparse.Namespace, settings: Settings) -> int:
    results = run_checks(settings)
    _print_table(
        ["Check", "Status", "Details"],
        [[result.name, "ok" if result.success else "FAILED", result.message] for result in results],
    )
    if all(result.success for result in results):
        print("All health checks passed!")
        return 0
    print("Some health checks failed")
    return 1


COMMANDS: Dict[str, Callable[[argparse.Namespace, Settings], int]] = {
    "sync": cmd_sync,
    "verify": cmd_verify,
    "stats": cmd_stats,
    "health": cmd_health,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync restaurant listings from Google Places")
    parser.add_argument("--no-log-file", dest="log_to_file", action="store_false", help="Log to the console only")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Run a full discovery and import")
    sync_parser.add_argument("-f", "--force", action="store_true", help="Run even if SYNC_ENABLED is false")
    sync_parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Skip database writes")

    verify_parser = subparsers.add_parser("verify", help="Refresh one listing by Google Place ID")
    verify_parser.add_argument("place_id", help="Google Place ID of the listing")

    subparsers.add_parser("stats", help="Show listing statistics")
    subparsers.add_parser("health", help="Check connectivity and configuration")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings, log_to_file=args.log_to_file)

    try:
        return COMMANDS[args.command](args, settings)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.critical("Command %s failed: %s", args.command, exc, exc_info=True)
        send_alert(exc, f"placesync {args.command}", settings)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
