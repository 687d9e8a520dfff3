"""
Builder for IGDB's APIcalypse query language.

A query body is a sequence of ``clause value;`` statements::

    fields name,slug,rating;
    where version_parent = null & genres = 5;
    sort rating desc;
    limit 20;
    offset 0;

Usage:
    body = (
        IgdbQuery()
        .fields(GAME_FIELDS)
        .where("genres = 5")
        .sort("rating", "desc")
        .limit(20)
        .build()
    )
"""
from typing import Iterable, List, Optional

# IGDB caps ``limit`` at 500; the app never asks for more than a page of 50
MAX_PAGE_SIZE = 50

# IGDB ``category`` values that are not standalone base games
CATEGORY_DLC = 1
CATEGORY_EXPANSION = 2
CATEGORY_BUNDLE = 3
CATEGORY_STANDALONE_EXPANSION = 4
CATEGORY_MOD = 5
CATEGORY_EPISODE = 6
CATEGORY_SEASON = 7
CATEGORY_PACK = 13
CATEGORY_UPDATE = 14

NON_BASE_GAME_CATEGORIES = (
    CATEGORY_DLC,
    CATEGORY_EXPANSION,
    CATEGORY_BUNDLE,
    CATEGORY_STANDALONE_EXPANSION,
    CATEGORY_MOD,
    CATEGORY_EPISODE,
    CATEGORY_SEASON,
    CATEGORY_PACK,
    CATEGORY_UPDATE,
)

# IGDB ``category`` of a main game
CATEGORY_MAIN_GAME = 0

# Multiplayer, co-operative, split screen, MMO, battle royale
MULTIPLAYER_GAME_MODES = (2, 3, 4, 5, 6)

GAME_FIELDS = (
    "name",
    "slug",
    "summary",
    "storyline",
    "rating",
    "rating_count",
    "first_release_date",
    "cover.url",
    "genres.name",
    "platforms.name",
    "screenshots.url",
    "videos.video_id",
    "age_ratings.category",
    "age_ratings.rating",
    "game_modes.name",
    "player_perspectives.name",
)

REFERENCE_FIELDS = ("name",)


def quote(value: str) -> str:
    """Render ``value`` as a double-quoted APIcalypse string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def id_list(ids: Iterable[int]) -> str:
    """Render integers as an APIcalypse tuple, e.g. ``(1,2,3)``."""
    return "(" + ",".join(str(int(i)) for i in ids) + ")"


def clamp_limit(limit: int, maximum: int = MAX_PAGE_SIZE) -> int:
    """Keep a requested page size within 1..maximum."""
    return max(1, min(int(limit), maximum))


class IgdbQuery:
    """Fluent builder producing an APIcalypse query body."""

    def __init__(self):
        self._fields: List[str] = []
        self._conditions: List[str] = []
        self._sort: Optional[str] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def fields(self, fields: Iterable[str]) -> "IgdbQuery":
        self._fields.extend(fields)
        return self

    def where(self, condition: str) -> "IgdbQuery":
        """Add a condition; multiple conditions are joined with ``&``."""
        self._conditions.append(condition)
        return self

    def base_games_only(self) -> "IgdbQuery":
        """Drop DLC, expansions, bundles and version variants (ports, editions)."""
        self.where("version_parent = null")
        return self.where(f"category != {id_list(NON_BASE_GAME_CATEGORIES)}")

    def main_games_only(self) -> "IgdbQuery":
        return self.where(f"category = {CATEGORY_MAIN_GAME}")

    def multiplayer_only(self) -> "IgdbQuery":
        return self.where(f"game_modes = {id_list(MULTIPLAYER_GAME_MODES)}")

    def sort(self, field: str, direction: str = "desc") -> "IgdbQuery":
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid sort direction: {direction}")
        self._sort = f"{field} {direction}"
        return self

    def limit(self, limit: int) -> "IgdbQuery":
        self._limit = limit
        return self

    def offset(self, offset: int) -> "IgdbQuery":
        self._offset = offset
        return self

    def build(self) -> str:
        if not self._fields:
            raise ValueError("An IGDB query needs at least one field")

        parts = [f"fields {','.join(self._fields)};"]
        if self._conditions:
            parts.append(f"where {' & '.join(self._conditions)};")
        if self._sort:
            parts.append(f"sort {self._sort};")
        if self._limit is not None:
            parts.append(f"limit {self._limit};")
        if self._offset is not None:
            parts.append(f"offset {self._offset};")
        return " ".join(parts)
