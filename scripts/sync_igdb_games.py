#!/usr/bin/env python3
"""
Manual IGDB Game Sync Script.

Provides command-line interface for pulling IGDB games into the local
catalog, e.g. to seed a fresh database.
"""
import sys
import asyncio
import argparse
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import settings
from app.core.database import SessionLocal, init_db
from app.core.logging import configure_logging
from app.core.retry import call_with_backoff
from app.services.catalog.exceptions import CatalogError
from app.services.catalog.igdb_client import close_catalog_client
from app.services.sync.orchestrator import GameSyncOrchestrator
from app.services.sync.requests import build_sync_request
from app.services.sync.results import SyncResult


def print_result(label: str, result: SyncResult):
    print(f"✅ {label} sync complete:")
    print(f"   Found:   {result.total_found}")
    print(f"   Created: {result.created}")
    print(f"   Updated: {result.updated}")
    print(f"   Errors:  {result.total_errors}")
    for error in result.errors:
        print(f"     - {error.name or '?'} (IGDB {error.external_id}): {error.reason}")


async def run_sync(args) -> int:
    """Run one sync pass for the mode selected on the command line."""
    if args.mode == "slug" and not args.query:
        print("❌ --query is required for slug sync")
        return 2

    db = SessionLocal()
    try:
        orchestrator = GameSyncOrchestrator(db)

        if args.mode == "slug":
            print(f"🔄 Syncing IGDB game '{args.query}'...")
            result = await call_with_backoff(orchestrator.sync_game_by_slug, args.query)
        else:
            request = build_sync_request(
                mode=args.mode,
                query=args.query,
                limit=args.limit,
                genre_id=args.genre_id,
                platform_id=args.platform_id,
            )
            print(f"🔄 Syncing {args.mode} games from IGDB (limit {request.limit})...")
            result = await call_with_backoff(orchestrator.sync, request)

        print_result(args.mode, result)
        stats = orchestrator.get_sync_stats()
        print(f"📊 {stats['games_with_igdb_id']}/{stats['total_games']} games linked ({stats['sync_percentage']}%)")
        return 0 if result.total_errors == 0 else 1

    except (CatalogError, ValueError) as e:
        print(f"❌ Sync failed: {e}")
        return 1

    finally:
        db.close()


def show_stats() -> int:
    db = SessionLocal()
    try:
        orchestrator = GameSyncOrchestrator(db)
        stats = orchestrator.get_sync_stats()
        status = orchestrator.get_sync_status()

        print("📊 Local catalog:")
        print(f"   Games:          {stats['total_games']}")
        print(f"   Linked to IGDB: {stats['games_with_igdb_id']} ({stats['sync_percentage']}%)")
        print(f"   Sync health:    {status['health_status']}")
        if not status["catalog_configured"]:
            print(f"   IGDB:           not configured (missing {', '.join(settings.missing_igdb_credentials())})")
        for mode, info in status["modes"].items():
            print(
                f"   - {mode}: {info['status']} at {info['last_completed_at']} "
                f"({info['records_created']} created, {info['records_updated']} updated, "
                f"{info['records_failed']} failed)"
            )
        return 0
    finally:
        db.close()


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Manual game sync from IGDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seed the 50 most-visited games
  python scripts/sync_igdb_games.py popular --limit 50

  # Sync games matching a name
  python scripts/sync_igdb_games.py search --query "halo"

  # Sync top shooters (IGDB genre 5) and PC games (IGDB platform 6)
  python scripts/sync_igdb_games.py genre --genre-id 5
  python scripts/sync_igdb_games.py platform --platform-id 6

  # Sync one game by IGDB slug
  python scripts/sync_igdb_games.py slug --query halo-3

  # Show link coverage, IGDB configuration and last sync per mode
  python scripts/sync_igdb_games.py stats
        """
    )

    parser.add_argument(
        'mode',
        choices=['popular', 'search', 'genre', 'platform', 'slug', 'stats'],
        help='What to do'
    )
    parser.add_argument(
        '--query',
        type=str,
        default=None,
        help='Search term (search) or IGDB slug (slug)'
    )
    parser.add_argument(
        '--limit',
        type=int,
        default=20,
        help='Number of games to sync (default: 20)'
    )
    parser.add_argument(
        '--genre-id',
        type=int,
        default=None,
        help='IGDB genre id (genre mode)'
    )
    parser.add_argument(
        '--platform-id',
        type=int,
        default=None,
        help='IGDB platform id (platform mode)'
    )
    parser.add_argument(
        '--create-tables',
        action='store_true',
        help='Create missing tables before syncing'
    )

    args = parser.parse_args()

    configure_logging(level=settings.LOG_LEVEL, json_output=False)

    if args.create_tables:
        init_db()

    try:
        if args.mode == 'stats':
            return show_stats()
        return await run_sync(args)
    finally:
        await close_catalog_client()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
