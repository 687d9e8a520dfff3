"""
Typed views of IGDB payloads.

Records are immutable and carry no local identity; they live only for the
duration of a sync pass or an API response. IGDB omits fields it has no
value for, so every attribute except ``id`` is optional.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

IMAGE_BASE_URL = "https://images.igdb.com/igdb/image/upload"


def expand_image_url(url: Optional[str], size: str) -> Optional[str]:
    """
    Turn an IGDB image reference into an absolute URL at the given size.

    IGDB hands out protocol-relative thumbnail URLs such as
    ``//images.igdb.com/igdb/image/upload/t_thumb/co1wyy.jpg``.

    >>> expand_image_url("//images.igdb.com/igdb/image/upload/t_thumb/co1.jpg", "t_cover_big")
    'https://images.igdb.com/igdb/image/upload/t_cover_big/co1.jpg'
    """
    if not url:
        return None
    if url.startswith("//"):
        url = f"https:{url}"
    return url.replace("t_thumb", size)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class NamedRef(_Frozen):
    id: Optional[int] = None
    name: Optional[str] = None


class ImageRef(_Frozen):
    id: Optional[int] = None
    url: Optional[str] = None


class VideoRef(_Frozen):
    id: Optional[int] = None
    video_id: Optional[str] = None


class AgeRatingRef(_Frozen):
    category: Optional[int] = None
    rating: Optional[int] = None


class ExternalGameRecord(_Frozen):
    """A game as returned by the IGDB ``games`` endpoint."""
    id: int
    name: Optional[str] = None
    slug: Optional[str] = None
    summary: Optional[str] = None
    storyline: Optional[str] = None
    rating: Optional[float] = None  # 0-100
    rating_count: Optional[int] = None
    first_release_date: Optional[int] = None  # unix seconds
    cover: Optional[ImageRef] = None
    genres: tuple[NamedRef, ...] = ()
    platforms: tuple[NamedRef, ...] = ()
    game_modes: tuple[NamedRef, ...] = ()
    player_perspectives: tuple[NamedRef, ...] = ()
    screenshots: tuple[ImageRef, ...] = ()
    videos: tuple[VideoRef, ...] = ()
    age_ratings: tuple[AgeRatingRef, ...] = ()

    @property
    def genre_names(self) -> list[str]:
        return [g.name for g in self.genres if g.name]

    @property
    def platform_names(self) -> list[str]:
        return [p.name for p in self.platforms if p.name]

    @property
    def release_date(self) -> Optional[datetime]:
        if self.first_release_date is None:
            return None
        return datetime.fromtimestamp(self.first_release_date, tz=timezone.utc)

    def cover_url(self, size: str = "t_cover_big") -> Optional[str]:
        return expand_image_url(self.cover.url if self.cover else None, size)

    def screenshot_urls(self, size: str = "t_screenshot_big") -> list[str]:
        urls = (expand_image_url(s.url, size) for s in self.screenshots)
        return [u for u in urls if u]

    def video_ids(self) -> list[str]:
        return [v.video_id for v in self.videos if v.video_id]


@dataclass(frozen=True)
class MalformedGameRecord:
    """
    A ``games`` item that failed validation.

    Carries whatever identity the raw item had so the failure can be
    reported against it; the rest of its page is still usable.
    """
    id: Optional[int]
    name: Optional[str]
    reason: str

    @classmethod
    def from_payload(cls, item: Any, error: ValidationError) -> "MalformedGameRecord":
        raw = item if isinstance(item, dict) else {}
        game_id = raw.get("id")
        name = raw.get("name")
        first = error.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        detail = f"{location}: {first['msg']}" if location else first["msg"]
        return cls(
            id=game_id if isinstance(game_id, int) else None,
            name=name if isinstance(name, str) else None,
            reason=f"malformed record ({detail})",
        )


# One item of a games page as seen by the sync reconciler
GameEntry = Union[ExternalGameRecord, MalformedGameRecord]


class CatalogReference(_Frozen):
    """Genre or platform reference data."""
    id: int
    name: Optional[str] = None


@dataclass(frozen=True)
class AccessToken:
    """Bearer token for the IGDB API; ``expires_at`` is on the client's clock."""
    value: str
    expires_at: float

    def is_usable(self, now: float, margin: float = 60.0) -> bool:
        """False once we are within ``margin`` seconds of expiry."""
        return now < self.expires_at - margin
