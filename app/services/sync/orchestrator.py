"""Sync orchestrator for reconciling IGDB catalog pages into local Game rows.

A sync pass:
1. Refuses to start when IGDB credentials are missing (nothing fetched, nothing written)
2. Fetches one page of catalog records for the requested mode
3. Reconciles each record in page order: find by igdb_id, else by slug
   (backfilling igdb_id), else create; then refresh the mutable fields
4. Commits per record, so one bad record never takes the page down with it;
   a record that fails validation is reported against its IGDB id and skipped
5. Writes the pass outcome to sync_metadata

Page-level failures (transport, upstream status, a body that is not a JSON
array) abort the pass and propagate after being recorded. Retrying them is
the caller's job.

Concurrent passes are not serialized: two overlapping passes that touch the
same game both write it and the later commit wins.
"""
import time
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.logging import get_logger
from app.core.metrics import game_sync_duration_seconds, record_sync_outcome
from app.models import Game, SyncMetadata
from app.models.base import utcnow
from app.repositories.game_repository import GameRepository
from app.services.catalog.exceptions import (
    CatalogRecordNotFound,
    ConfigurationError,
    RecordReconciliationError,
)
from app.services.catalog.igdb_client import IgdbClient, get_catalog_client
from app.services.catalog.records import ExternalGameRecord, GameEntry, MalformedGameRecord
from app.services.sync.game_mapper import map_record_to_game_fields, mutable_fields
from app.services.sync.requests import (
    GenreSync,
    PlatformSync,
    PopularSync,
    SearchSync,
    SyncRequest,
)
from app.services.sync.results import CREATED, FAILED, UPDATED, RecordOutcome, SyncResult
from app.services.sync.utils.slug import slugify

logger = get_logger(__name__)

SYNC_SOURCE = "igdb"
SLUG_SYNC_MODE = "slug"


class GameSyncOrchestrator:
    """
    Coordinates catalog sync passes.

    All sync operations (HTTP routes, CLI script) should go through this
    orchestrator.
    """

    def __init__(self, db: Session, catalog: Optional[IgdbClient] = None):
        """
        Initialize the sync orchestrator.

        Args:
            db: SQLAlchemy database session
            catalog: Catalog client; defaults to the process-wide IgdbClient
        """
        self.db = db
        self.catalog = catalog if catalog is not None else get_catalog_client()
        self.games = GameRepository(db)

    # ========================================================================
    # Sync passes
    # ========================================================================

    async def sync(self, request: SyncRequest) -> SyncResult:
        """
        Run one sync pass.

        Args:
            request: PopularSync, SearchSync, GenreSync or PlatformSync

        Returns:
            Aggregate SyncResult for the page

        Raises:
            TypeError: Unknown request type
            ConfigurationError: IGDB credentials missing
            TransportError / UpstreamError / ParseError: page fetch failed
        """
        if isinstance(request, PopularSync):
            fetch = lambda: self.catalog.get_popular_games(request.limit, include_malformed=True)
        elif isinstance(request, SearchSync):
            fetch = lambda: self.catalog.search_games(request.term, request.limit, include_malformed=True)
        elif isinstance(request, GenreSync):
            fetch = lambda: self.catalog.get_games_by_genre(
                request.genre_id, request.limit, include_malformed=True
            )
        elif isinstance(request, PlatformSync):
            fetch = lambda: self.catalog.get_games_by_platform(
                request.platform_id, request.limit, include_malformed=True
            )
        else:
            raise TypeError(f"Unsupported sync request: {type(request).__name__}")

        return await self._run(request.mode.value, fetch)

    async def sync_popular(self, limit: int = 20) -> SyncResult:
        return await self.sync(PopularSync(limit=limit))

    async def sync_search(self, term: str, limit: int = 20) -> SyncResult:
        return await self.sync(SearchSync(term=term, limit=limit))

    async def sync_genre(self, genre_id: int, limit: int = 20) -> SyncResult:
        return await self.sync(GenreSync(genre_id=genre_id, limit=limit))

    async def sync_platform(self, platform_id: int, limit: int = 20) -> SyncResult:
        return await self.sync(PlatformSync(platform_id=platform_id, limit=limit))

    async def sync_game_by_slug(self, slug: str) -> SyncResult:
        """
        Sync a single game by its IGDB slug.

        Raises:
            CatalogRecordNotFound: IGDB has no game with that slug
        """
        async def fetch() -> List[GameEntry]:
            record = await self.catalog.get_game_by_slug(slug, include_malformed=True)
            if record is None:
                raise CatalogRecordNotFound(f"Game with slug '{slug}' not found in IGDB")
            return [record]

        return await self._run(SLUG_SYNC_MODE, fetch)

    async def _run(
        self,
        mode: str,
        fetch: Callable[[], Awaitable[List[GameEntry]]],
    ) -> SyncResult:
        self._require_configured()

        started_at = utcnow()
        start = time.perf_counter()
        logger.info(f"Starting IGDB {mode} sync")

        try:
            records = await fetch()
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.error(f"IGDB {mode} sync failed fetching page: {e}")
            self._write_metadata(mode, started_at, duration_ms, error=e)
            raise

        outcomes = [self._reconcile_safely(entry) for entry in records]
        result = SyncResult.from_outcomes(outcomes)

        elapsed = time.perf_counter() - start
        duration_ms = int(elapsed * 1000)
        game_sync_duration_seconds.labels(mode=mode).observe(elapsed)
        record_sync_outcome(mode, CREATED, result.created)
        record_sync_outcome(mode, UPDATED, result.updated)
        record_sync_outcome(mode, FAILED, result.failed)
        self._write_metadata(mode, started_at, duration_ms, result=result)

        logger.info(
            f"IGDB {mode} sync complete: {result.total_synced}/{result.total_found} synced "
            f"({result.created} created, {result.updated} updated, "
            f"{result.total_errors} errors, {duration_ms}ms)"
        )
        return result

    def _require_configured(self) -> None:
        if not self.catalog.is_configured():
            error = ConfigurationError(self.catalog.missing_credentials())
            logger.warning(f"IGDB sync refused: {error}")
            raise error

    # ========================================================================
    # Per-record reconciliation
    # ========================================================================

    def _reconcile_safely(self, record: GameEntry) -> RecordOutcome:
        """Reconcile one record; any failure rolls it back and becomes an outcome."""
        if isinstance(record, MalformedGameRecord):
            logger.warning(f"Skipping IGDB game {record.id}: {record.reason}")
            return RecordOutcome.failed(record.id, record.name, record.reason)

        try:
            return self._reconcile(record)
        except RecordReconciliationError as e:
            self.games.rollback()
            logger.warning(f"Skipping IGDB game {e.external_id}: {e.reason}")
            return RecordOutcome.failed(e.external_id, record.name, e.reason)
        except Exception as e:
            self.games.rollback()
            logger.error(f"Error syncing IGDB game {record.id} ({record.name}): {e}")
            return RecordOutcome.failed(record.id, record.name, str(e))

    def _reconcile(self, record: ExternalGameRecord) -> RecordOutcome:
        if not record.name or not record.name.strip():
            raise RecordReconciliationError(record.id, "missing name")

        game = self.games.find_by_igdb_id(record.id)
        if game is None:
            game = self._find_by_slug(record)
            if game is not None:
                self._link(game, record)

        if game is None:
            game = self.games.create(**map_record_to_game_fields(record))
            self.games.save()
            logger.debug(f"Created game {game.slug} from IGDB {record.id}")
            return RecordOutcome.created(record.id, record.name, game.id)

        self.games.update(game, **mutable_fields(record))
        self.games.save()
        return RecordOutcome.updated(record.id, record.name, game.id)

    def _find_by_slug(self, record: ExternalGameRecord) -> Optional[Game]:
        """Fallback match on slug: name-derived first, then IGDB's own."""
        for candidate in (slugify(record.name), record.slug):
            game = self.games.find_by_slug(candidate)
            if game is not None:
                return game
        return None

    def _link(self, game: Game, record: ExternalGameRecord) -> None:
        if game.igdb_id is None:
            logger.info(f"Linking existing game {game.slug} to IGDB {record.id}")
            game.igdb_id = record.id
        elif game.igdb_id != record.id:
            # First writer keeps the identity; only mutable fields follow this record
            logger.warning(
                f"Slug {game.slug} already linked to IGDB {game.igdb_id}, "
                f"refreshing it from IGDB {record.id} without relinking"
            )

    # ========================================================================
    # Metadata & status
    # ========================================================================

    def _get_or_create_metadata(self, source: str, data_type: str) -> SyncMetadata:
        """Get or create sync metadata entry."""
        metadata = self.db.query(SyncMetadata).filter(
            SyncMetadata.source == source,
            SyncMetadata.data_type == data_type
        ).first()

        if not metadata:
            metadata = SyncMetadata(source=source, data_type=data_type)
            self.db.add(metadata)

        return metadata

    def _write_metadata(
        self,
        mode: str,
        started_at,
        duration_ms: int,
        result: Optional[SyncResult] = None,
        error: Optional[Exception] = None,
    ) -> None:
        metadata = self._get_or_create_metadata(SYNC_SOURCE, mode)
        metadata.last_sync_started_at = started_at
        metadata.last_sync_completed_at = utcnow()
        metadata.sync_duration_ms = duration_ms

        if result is not None:
            metadata.last_sync_status = result.status
            metadata.records_processed = result.total_found
            metadata.records_created = result.created
            metadata.records_updated = result.updated
            metadata.records_failed = result.failed
            metadata.error_message = result.errors[0].reason if result.errors else None
        else:
            metadata.last_sync_status = "failed"
            metadata.records_processed = 0
            metadata.records_created = 0
            metadata.records_updated = 0
            metadata.records_failed = 0
            metadata.error_message = str(error)

        self.db.commit()

    def get_sync_stats(self) -> Dict:
        """How much of the local catalog is linked to IGDB."""
        total_games = self.games.count()
        linked = self.games.count_linked()
        return {
            "total_games": total_games,
            "games_with_igdb_id": linked,
            "sync_percentage": int(linked * 100 / total_games + 0.5) if total_games else 0,
        }

    def get_sync_status(self) -> Dict:
        """
        Return overall sync health status.

        Aggregates the last pass of every mode from sync_metadata.
        """
        all_metadata = self.db.query(SyncMetadata).filter(SyncMetadata.source == SYNC_SOURCE).all()

        modes = {}
        for metadata in all_metadata:
            modes[metadata.data_type] = {
                "status": metadata.last_sync_status,
                "last_started_at": metadata.last_sync_started_at.isoformat() if metadata.last_sync_started_at else None,
                "last_completed_at": metadata.last_sync_completed_at.isoformat() if metadata.last_sync_completed_at else None,
                "records_processed": metadata.records_processed,
                "records_created": metadata.records_created,
                "records_updated": metadata.records_updated,
                "records_failed": metadata.records_failed,
                "error_message": metadata.error_message,
                "duration_ms": metadata.sync_duration_ms,
            }

        total_jobs = len(all_metadata)
        success_count = sum(1 for m in all_metadata if m.last_sync_status == "success")
        usable_count = sum(1 for m in all_metadata if m.last_sync_status in ("success", "partial"))
        if total_jobs == 0:
            health_status = "unknown"
        elif success_count == total_jobs:
            health_status = "healthy"
        elif usable_count > 0:
            health_status = "degraded"
        else:
            health_status = "unhealthy"

        return {
            "health_status": health_status,
            "catalog_configured": self.catalog.is_configured(),
            "total_jobs": total_jobs,
            "success_count": success_count,
            "modes": modes,
            "stats": self.get_sync_stats(),
        }

    async def cleanup_unlinked_games(self, resync_limit: int = 50) -> Dict:
        """
        Delete games with no IGDB link, then repopulate from the popular list.

        This is the administrative delete; sync passes themselves never delete.
        """
        self._require_configured()

        deleted = self.games.delete_unlinked()
        self.games.save()
        logger.info(f"Deleted {deleted} games without an IGDB id")

        result = await self.sync_popular(limit=resync_limit)
        return {"deleted": deleted, "sync": result.to_dict()}
