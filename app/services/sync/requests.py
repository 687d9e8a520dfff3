"""
Sync request types.

Each mode carries exactly the parameters it needs, so a genre sync without
a genre id cannot be constructed. ``build_sync_request`` is the single place
untyped input (HTTP bodies, CLI flags) is validated into one of these.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from app.services.catalog.query import MAX_PAGE_SIZE

DEFAULT_SYNC_LIMIT = 20
POPULAR_SYNC_MAX_LIMIT = 100


class SyncMode(str, Enum):
    POPULAR = "popular"
    SEARCH = "search"
    GENRE = "genre"
    PLATFORM = "platform"


@dataclass(frozen=True)
class PopularSync:
    limit: int = DEFAULT_SYNC_LIMIT

    mode = SyncMode.POPULAR


@dataclass(frozen=True)
class SearchSync:
    term: str
    limit: int = DEFAULT_SYNC_LIMIT

    mode = SyncMode.SEARCH


@dataclass(frozen=True)
class GenreSync:
    genre_id: int
    limit: int = DEFAULT_SYNC_LIMIT

    mode = SyncMode.GENRE


@dataclass(frozen=True)
class PlatformSync:
    platform_id: int
    limit: int = DEFAULT_SYNC_LIMIT

    mode = SyncMode.PLATFORM


SyncRequest = Union[PopularSync, SearchSync, GenreSync, PlatformSync]


def _validate_limit(limit: Optional[int], maximum: int) -> int:
    if limit is None:
        return DEFAULT_SYNC_LIMIT
    if limit < 1 or limit > maximum:
        raise ValueError(f"limit must be between 1 and {maximum}")
    return limit


def _validate_id(value: Optional[int], name: str) -> int:
    if value is None:
        raise ValueError(f"{name} is required")
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer")
    return value


def build_sync_request(
    mode: str,
    query: Optional[str] = None,
    limit: Optional[int] = None,
    genre_id: Optional[int] = None,
    platform_id: Optional[int] = None,
) -> SyncRequest:
    """
    Validate loose parameters into a typed sync request.

    Args:
        mode: One of popular, search, genre, platform
        query: Search term (search mode)
        limit: Page size; defaults to 20
        genre_id: IGDB genre id (genre mode)
        platform_id: IGDB platform id (platform mode)

    Raises:
        ValueError: Unknown mode, or a parameter missing/invalid for the mode
    """
    try:
        sync_mode = SyncMode((mode or "").strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in SyncMode)
        raise ValueError(f"Invalid sync mode '{mode}'. Use one of: {valid}") from None

    if sync_mode is SyncMode.POPULAR:
        return PopularSync(limit=_validate_limit(limit, POPULAR_SYNC_MAX_LIMIT))

    limit = _validate_limit(limit, MAX_PAGE_SIZE)

    if sync_mode is SyncMode.SEARCH:
        term = (query or "").strip()
        if not term:
            raise ValueError("query is required for search sync")
        return SearchSync(term=term, limit=limit)

    if sync_mode is SyncMode.GENRE:
        return GenreSync(genre_id=_validate_id(genre_id, "genre_id"), limit=limit)

    return PlatformSync(platform_id=_validate_id(platform_id, "platform_id"), limit=limit)
