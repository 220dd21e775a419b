import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from prometheus_client import REGISTRY, write_to_textfile
from pydantic import ValidationError

from watts_happening.client import StravaClient
from watts_happening.config import Settings, get_settings
from watts_happening.errors import ConfigError, WattsHappeningError
from watts_happening.models import SyncResult
from watts_happening.stats import calculate_stats, format_stats
from watts_happening.store import ActivityFileStore, ActivityIndexStore
from watts_happening.sync import SyncManager

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Strava indoor rides to local JSON files")
    parser.set_defaults(
        data_dir=None,
        max_pages=None,
        per_page=None,
        request_delay=None,
        sport_type=None,
        metrics_file=None,
    )
    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Fetch new activities and their streams (default)")
    sync_parser.add_argument('--data-dir', type=str, help='Directory holding index.json and activities/')
    sync_parser.add_argument('--max-pages', type=int, help='Maximum activity list pages to fetch')
    sync_parser.add_argument('--per-page', type=int, help='Activities requested per page')
    sync_parser.add_argument('--request-delay', type=float, help='Seconds to wait between stream requests')
    sync_parser.add_argument('--sport-type', type=str, help='Sport type to keep (default VirtualRide)')
    sync_parser.add_argument('--metrics-file', type=str, help='Write run metrics in Prometheus textfile format')

    stats_parser = subparsers.add_parser("stats", help="Summarize the synced activities")
    stats_parser.add_argument('--data-dir', type=str, help='Directory holding index.json and activities/')

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "sync"
    return args


def load_settings(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, with command line flags taking precedence."""
    try:
        settings = get_settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    overrides = {
        "DATA_DIR": args.data_dir,
        "MAX_PAGES": args.max_pages,
        "PER_PAGE": args.per_page,
        "REQUEST_DELAY": args.request_delay,
        "TARGET_SPORT_TYPE": args.sport_type,
    }
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


async def run_sync(settings: Settings) -> SyncResult:
    client_id, client_secret, refresh_token = settings.strava_credentials()
    async with StravaClient(settings) as client:
        manager = SyncManager(
            client,
            ActivityIndexStore(settings.DATA_DIR),
            ActivityFileStore(settings.DATA_DIR),
            settings,
        )
        return await manager.run(client_id, client_secret, refresh_token)


def run_stats(settings: Settings) -> str:
    records = ActivityFileStore(settings.DATA_DIR).iter_records()
    return format_stats(calculate_stats(records))


def write_metrics(path: str) -> None:
    try:
        write_to_textfile(path, REGISTRY)
    except OSError as e:
        logger.warning(f"Could not write metrics to {path}: {e}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
    except ConfigError as e:
        logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.command == "stats":
        print(run_stats(settings))
        return 0

    try:
        result = asyncio.run(run_sync(settings))
    except WattsHappeningError as e:
        logger.error(f"Sync failed with {type(e).__name__}: {e}")
        return 1
    finally:
        if args.metrics_file:
            write_metrics(args.metrics_file)

    logger.info(
        f"Sync complete ({result.state.value}): {result.candidates} new, "
        f"{result.with_streams} with streams, {result.without_streams} without streams, "
        f"{result.existing_files} reused files, {result.total_activities} in index"
    )
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == '__main__':
    cli()
