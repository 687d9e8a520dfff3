"""Sync API routes for pulling IGDB games into the local catalog.

Provides endpoints for:
- Manual sync triggers (generic and per mode)
- Single-game sync by IGDB slug
- Link coverage stats and per-mode sync health
- Administrative cleanup of unlinked games

All endpoints require the X-API-Key header.
"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.routes.catalog import get_catalog
from app.api.schemas import (
    GenreSyncBody,
    PlatformSyncBody,
    PopularSyncBody,
    SearchSyncBody,
    SyncRequestBody,
)
from app.core.auth import get_api_key
from app.core.config import settings
from app.core.database import get_db
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.core.retry import call_with_backoff
from app.services.catalog.igdb_client import IgdbClient
from app.services.sync.orchestrator import GameSyncOrchestrator
from app.services.sync.requests import (
    GenreSync,
    PlatformSync,
    PopularSync,
    SearchSync,
    SyncRequest,
    build_sync_request,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/games/sync", tags=["sync"], dependencies=[Depends(get_api_key)])


def get_orchestrator(
    db: Session = Depends(get_db),
    catalog: IgdbClient = Depends(get_catalog),
) -> GameSyncOrchestrator:
    """Dependency to get sync orchestrator instance."""
    return GameSyncOrchestrator(db, catalog)


async def _run_sync(orchestrator: GameSyncOrchestrator, sync_request: SyncRequest) -> Dict:
    result = await call_with_backoff(orchestrator.sync, sync_request)
    return {
        "success": True,
        "mode": sync_request.mode.value,
        "message": f"Synced {result.total_synced} of {result.total_found} games",
        "result": result.to_dict(),
    }


@router.post("")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def trigger_sync(
    request: Request,
    body: SyncRequestBody,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Trigger a sync pass for any mode.

    Body: ``{mode, query?, limit, genre_id?, platform_id?}``. Parameters
    that do not fit the mode are rejected with 400.
    """
    sync_request = build_sync_request(
        mode=body.mode,
        query=body.query,
        limit=body.limit,
        genre_id=body.genre_id,
        platform_id=body.platform_id,
    )
    return await _run_sync(orchestrator, sync_request)


@router.post("/popular")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_popular(
    request: Request,
    body: Optional[PopularSyncBody] = None,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync the currently most-visited games on IGDB."""
    body = body or PopularSyncBody()
    return await _run_sync(orchestrator, PopularSync(limit=body.limit))


@router.post("/search")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_search(
    request: Request,
    body: SearchSyncBody,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync the games matching a name search."""
    return await _run_sync(orchestrator, SearchSync(term=body.query.strip(), limit=body.limit))


@router.post("/genre")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_genre(
    request: Request,
    body: GenreSyncBody,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    return await _run_sync(orchestrator, GenreSync(genre_id=body.genre_id, limit=body.limit))


@router.post("/platform")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_platform(
    request: Request,
    body: PlatformSyncBody,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    return await _run_sync(orchestrator, PlatformSync(platform_id=body.platform_id, limit=body.limit))


@router.post("/slug/{slug}")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def sync_game_by_slug(
    request: Request,
    slug: str,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync one game by its IGDB slug; 404 when IGDB does not know it."""
    result = await call_with_backoff(orchestrator.sync_game_by_slug, slug)
    return {
        "success": True,
        "mode": "slug",
        "message": f"Synced game {slug}",
        "result": result.to_dict(),
    }


@router.get("/stats")
async def get_sync_stats(
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """How many local games are linked to IGDB."""
    return orchestrator.get_sync_stats()


@router.get("/status")
async def get_sync_status(
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Get overall sync health status dashboard.

    Returns the last pass of every sync mode including:
    - Health status (healthy, degraded, unhealthy, unknown)
    - Last sync times and outcomes per mode
    - Link coverage stats
    """
    return orchestrator.get_sync_status()


@router.post("/cleanup")
@limiter.limit(settings.SYNC_RATE_LIMIT)
async def cleanup_unlinked_games(
    request: Request,
    resync_limit: int = 50,
    orchestrator: GameSyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """
    Delete games without an IGDB id, then resync the popular list.

    Destructive: rows created before the IGDB integration are removed.
    """
    logger.warning("Cleaning up games without an IGDB id")
    outcome = await call_with_backoff(orchestrator.cleanup_unlinked_games, resync_limit)
    return {"success": True, **outcome}
