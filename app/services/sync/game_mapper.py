"""
Mapping from IGDB records to local Game columns.

Pure functions: no session, no I/O. The reconciler decides whether the
output feeds a create or an update.
"""
from typing import Any, Dict, Optional

from app.services.catalog.records import ExternalGameRecord
from app.services.sync.utils.slug import slugify

COVER_SIZE = "t_cover_big"
SCREENSHOT_SIZE = "t_screenshot_big"


def local_slug(record: ExternalGameRecord) -> str:
    """Slug a new Game row is created under: derived from the name, else IGDB's own."""
    return slugify(record.name) or slugify(record.slug) or f"game-{record.id}"


def build_description(record: ExternalGameRecord) -> Optional[str]:
    """
    Summary (or storyline) followed by labelled detail paragraphs.

    >>> build_description(ExternalGameRecord(id=1, summary="Finish the fight."))
    'Finish the fight.'
    """
    parts = []
    base = record.summary or record.storyline
    if base:
        parts.append(base.strip())

    modes = [m.name for m in record.game_modes if m.name]
    if modes:
        parts.append(f"Game Modes: {', '.join(modes)}")

    perspectives = [p.name for p in record.player_perspectives if p.name]
    if perspectives:
        parts.append(f"Perspective: {', '.join(perspectives)}")

    if record.age_ratings and record.age_ratings[0].rating is not None:
        parts.append(f"Age Rating: {record.age_ratings[0].rating}")

    return "\n\n".join(parts) or None


def _scale_rating(rating: Optional[float]) -> Optional[float]:
    # IGDB rates 0-100, the platform shows 0-10
    if rating is None:
        return None
    return round(rating / 10, 2)


def mutable_fields(record: ExternalGameRecord) -> Dict[str, Any]:
    """Columns refreshed on every sync. Never includes id, slug or name."""
    cover = record.cover_url(COVER_SIZE)
    rating = _scale_rating(record.rating)
    genres = record.genre_names
    platforms = record.platform_names

    return {
        "description": build_description(record),
        "image": cover,
        "genre": genres[0] if genres else None,
        "platform": platforms[0] if platforms else None,
        "release_date": record.release_date.replace(tzinfo=None) if record.release_date else None,
        "rating": rating,
        "igdb_slug": record.slug,
        "igdb_rating": rating,
        "igdb_rating_count": record.rating_count,
        "igdb_cover_url": cover,
        "igdb_screenshots": record.screenshot_urls(SCREENSHOT_SIZE),
        "igdb_videos": record.video_ids(),
    }


def map_record_to_game_fields(record: ExternalGameRecord) -> Dict[str, Any]:
    """All columns for a Game row created from ``record``."""
    fields = mutable_fields(record)
    fields.update(
        igdb_id=record.id,
        name=record.name,
        slug=local_slug(record),
        is_active=True,
        is_multiplayer=False,
    )
    return fields
