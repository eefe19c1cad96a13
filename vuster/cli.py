"""
Command Line Interface for catalog sync and atlas generation.
"""

import argparse
import asyncio
import json
import logging
from typing import List, Optional

import httpx
import urllib3

from .aggregated_list import build_aggregated_list
from .atlas_publisher import AtlasPublisher
from .catalog_indexer import CatalogIndexer
from .catalog_store import CatalogStore
from .config import AtlasConfig, S3Config, StoreConfig, YouTubeConfig
from .errors import ConfigurationError, VusterError
from .image_fetcher import ImageFetcher
from .live_status import LiveStatusPoller
from .sync_orchestrator import SyncOrchestrator
from .youtube_client import YouTubeClient


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    for noisy in ('boto3', 'botocore', 'urllib3', 'httpx', 'httpcore', 'google'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logging.getLogger('vuster')


def get_s3_config(args: argparse.Namespace) -> S3Config:
    """Get S3 configuration from environment and CLI overrides."""
    config = S3Config.from_env()

    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint
    if getattr(args, 's3_bucket', None):
        config.bucket = args.s3_bucket
    if getattr(args, 's3_access_key', None):
        config.access_key = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        config.secret_key = args.s3_secret_key
    if getattr(args, 's3_public_url', None):
        config.public_base_url = args.s3_public_url
    if getattr(args, 'no_verify_ssl', False):
        config.verify_ssl = False

    return config


def check_configs(*configs) -> None:
    """Raise ConfigurationError listing every problem across the configs."""
    errors = []
    for config in configs:
        errors.extend(config.validate())
    if errors:
        raise ConfigurationError(errors)


def build_indexer(
    store: CatalogStore,
    http_client: httpx.AsyncClient,
    s3_config: S3Config,
    atlas_config: AtlasConfig,
    logger: logging.Logger
) -> CatalogIndexer:
    fetcher = ImageFetcher(
        client=http_client,
        max_concurrency=atlas_config.max_concurrency,
        logger=logger
    )
    publisher = AtlasPublisher(s3_config, object_key=atlas_config.object_key, logger=logger)
    return CatalogIndexer(store, fetcher, publisher, config=atlas_config, logger=logger)


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add object storage arguments to a parser."""
    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override S3_BUCKET')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')
    s3_group.add_argument('--s3-public-url', help='Override S3_PUBLIC_BASE_URL')
    s3_group.add_argument('--no-verify-ssl', action='store_true',
                          help='Skip TLS verification for the S3 endpoint')


async def _run_sync(args: argparse.Namespace, logger: logging.Logger) -> int:
    store_config = StoreConfig.from_env()
    youtube_config = YouTubeConfig.from_env()
    s3_config = get_s3_config(args)
    atlas_config = AtlasConfig()
    check_configs(store_config, youtube_config, s3_config, atlas_config)

    async with httpx.AsyncClient(timeout=atlas_config.fetch_timeout, follow_redirects=True) as http_client:
        store = CatalogStore(store_config, logger=logger)
        indexer = build_indexer(store, http_client, s3_config, atlas_config, logger)
        async with YouTubeClient(youtube_config, logger=logger) as youtube:
            orchestrator = SyncOrchestrator(store, youtube, indexer, logger=logger)
            result = await orchestrator.run_cycle()

    if not args.quiet:
        print()
        print(f"Status: {result.status}")
        print(f"Creators: {result.refreshed}/{result.creators} refreshed")
        print(f"Videos: {result.videos_written}")
        if result.atlas:
            print(f"Atlas: {result.atlas.atlas_url or 'unchanged'}")
            print(f"Indexed: {result.atlas.indexed_count}")
    return 0


async def _run_atlas(args: argparse.Namespace, logger: logging.Logger) -> int:
    store_config = StoreConfig.from_env()
    s3_config = get_s3_config(args)
    atlas_config = AtlasConfig()
    check_configs(store_config, s3_config, atlas_config)

    async with httpx.AsyncClient(timeout=atlas_config.fetch_timeout, follow_redirects=True) as http_client:
        store = CatalogStore(store_config, logger=logger)
        indexer = build_indexer(store, http_client, s3_config, atlas_config, logger)
        creator_ids = args.creator or [c.creator_id for c in await store.list_creators()]
        result = await indexer.run_atlas_cycle(creator_ids)

    if not args.quiet:
        stats = result.stats
        print()
        print(f"Atlas: {result.atlas_url or 'unchanged'}")
        print(f"Candidates: {stats.total_candidates} (capacity {stats.capacity})")
        print(f"Composited: {stats.composited}")
        print(f"Skipped: {stats.skipped}")
        print(f"Indexed: {result.indexed_count}")
    return 0


async def _run_list(args: argparse.Namespace, logger: logging.Logger) -> int:
    store_config = StoreConfig.from_env()
    check_configs(store_config)

    store = CatalogStore(store_config, logger=logger)
    payload = await build_aggregated_list(store)
    print(json.dumps(payload, ensure_ascii=False, indent=2 if args.pretty else None))
    return 0


async def _run_status(args: argparse.Namespace, logger: logging.Logger) -> int:
    store_config = StoreConfig.from_env()
    check_configs(store_config)

    store = CatalogStore(store_config, logger=logger)
    poller = LiveStatusPoller(store, logger=logger)
    try:
        if args.streamer:
            status = await poller.fetch_status(args.streamer)
            print(json.dumps({
                'streamerId': status.streamer_id,
                'isLive': status.is_live,
                'viewers': status.viewers,
            }))
        else:
            await poller.poll_all()
    finally:
        await poller.aclose()
    return 0


COMMANDS = {
    'sync': _run_sync,
    'atlas': _run_atlas,
    'list': _run_list,
    'status': _run_status,
}


def run_command(args: argparse.Namespace) -> int:
    """Execute a parsed command and map failures to exit codes."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        return asyncio.run(COMMANDS[args.command](args, logger))
    except ConfigurationError as e:
        for error in e.errors:
            logger.error(error)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except (VusterError, httpx.HTTPError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"{args.command} failed: {e}")
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='vuster',
        description='Creator catalog sync and thumbnail atlas generation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  sync     Refresh every creator's catalog, then rebuild the atlas
  atlas    Rebuild the atlas from the catalogs already stored
  list     Print the aggregated list served to the front end
  status   Poll live broadcast status

Configuration is read from the environment (YOUTUBE_API_KEY, S3_*,
FIRESTORE_PROJECT); S3 values can be overridden with flags.
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    sync_parser = subparsers.add_parser('sync', help='Full sync cycle')
    sync_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress summary output')
    sync_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(sync_parser)

    atlas_parser = subparsers.add_parser('atlas', help='Rebuild the thumbnail atlas only')
    atlas_parser.add_argument('--creator', action='append', help='Creator id(s) to include')
    atlas_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress summary output')
    atlas_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(atlas_parser)

    list_parser = subparsers.add_parser('list', help='Print the aggregated list as JSON')
    list_parser.add_argument('--pretty', action='store_true', help='Indent JSON output')
    list_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    status_parser = subparsers.add_parser('status', help='Poll live broadcast status')
    status_parser.add_argument('--streamer', metavar='ID', help='Check a single streamer without storing')
    status_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    return run_command(parsed_args)
