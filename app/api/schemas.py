"""Request bodies for the sync endpoints."""
from typing import Optional

from pydantic import BaseModel, Field


class SyncRequestBody(BaseModel):
    """Generic sync trigger; ``mode`` selects which of the other fields apply."""
    mode: str = Field(..., description="popular, search, genre or platform")
    query: Optional[str] = Field(None, description="Search term (search mode)")
    limit: int = Field(20, description="Page size (1-50, popular up to 100)")
    genre_id: Optional[int] = Field(None, description="IGDB genre id (genre mode)")
    platform_id: Optional[int] = Field(None, description="IGDB platform id (platform mode)")


class SearchSyncBody(BaseModel):
    query: str = Field(..., min_length=1)
    limit: int = Field(20, ge=1, le=50)


class GenreSyncBody(BaseModel):
    genre_id: int = Field(..., gt=0)
    limit: int = Field(20, ge=1, le=50)


class PlatformSyncBody(BaseModel):
    platform_id: int = Field(..., gt=0)
    limit: int = Field(20, ge=1, le=50)


class PopularSyncBody(BaseModel):
    limit: int = Field(20, ge=1, le=100)
