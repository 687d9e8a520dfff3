"""IGDB catalog browse routes.

Read-only passthrough to IGDB for the admin UI: search, popular games,
genre/platform reference lists, single-game lookup and response-cache
inspection. Nothing here writes to the local catalog.
"""
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.logging import get_logger
from app.services.catalog.igdb_client import IgdbClient, get_catalog_client
from app.services.catalog.records import CatalogReference, ExternalGameRecord

logger = get_logger(__name__)

router = APIRouter(prefix="/igdb", tags=["igdb"])


def get_catalog() -> IgdbClient:
    """Dependency to get the process-wide catalog client."""
    return get_catalog_client()


def _game_summary(game: ExternalGameRecord) -> Dict:
    return {
        "id": game.id,
        "name": game.name,
        "slug": game.slug,
        "summary": game.summary,
        "rating": round(game.rating / 10, 2) if game.rating is not None else None,
        "rating_count": game.rating_count,
        "release_date": game.release_date.isoformat() if game.release_date else None,
        "cover_url": game.cover_url(),
        "genres": game.genre_names,
        "platforms": game.platform_names,
    }


def _references(items: List[CatalogReference]) -> List[Dict]:
    return [{"id": item.id, "name": item.name} for item in items]


@router.get("/search")
async def search_games(
    q: str = Query(..., min_length=1, description="Game name to search for"),
    limit: int = Query(20, ge=1, le=50),
    catalog: IgdbClient = Depends(get_catalog)
) -> Dict:
    games = await catalog.search_games(q, limit)
    return {"count": len(games), "games": [_game_summary(g) for g in games]}


@router.get("/popular")
async def get_popular_games(
    limit: int = Query(20, ge=1, le=100),
    catalog: IgdbClient = Depends(get_catalog)
) -> Dict:
    """Most-visited games right now, in IGDB's ranking order."""
    games = await catalog.get_popular_games(limit)
    return {"count": len(games), "games": [_game_summary(g) for g in games]}


@router.get("/genres")
async def get_genres(catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    genres = await catalog.get_genres()
    return {"count": len(genres), "genres": _references(genres)}


@router.get("/platforms")
async def get_platforms(catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    platforms = await catalog.get_platforms()
    return {"count": len(platforms), "platforms": _references(platforms)}


@router.get("/games/{game_id}")
async def get_game(game_id: int, catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    game = await catalog.get_game_by_id(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail=f"IGDB game {game_id} not found")

    summary = _game_summary(game)
    summary.update(
        storyline=game.storyline,
        screenshots=game.screenshot_urls(),
        videos=game.video_ids(),
        game_modes=[m.name for m in game.game_modes if m.name],
        perspectives=[p.name for p in game.player_perspectives if p.name],
    )
    return summary


@router.get("/status")
async def get_catalog_status(catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    """Whether IGDB credentials are present, plus response-cache size. No upstream call."""
    configured = catalog.is_configured()
    return {
        "configured": configured,
        "missing": [] if configured else catalog.missing_credentials(),
        "cache_size": catalog.get_cache_stats()["size"],
    }


@router.get("/cache")
async def get_cache_stats(catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    return catalog.get_cache_stats()


@router.delete("/cache")
async def clear_cache(catalog: IgdbClient = Depends(get_catalog)) -> Dict:
    catalog.clear_cache()
    return {"success": True, "message": "IGDB cache cleared"}
