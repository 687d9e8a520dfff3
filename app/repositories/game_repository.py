"""Game repository for local catalog rows."""
from typing import Optional

from sqlalchemy.orm import Session

from app.models import Game
from app.repositories.base import BaseRepository


class GameRepository(BaseRepository[Game]):
    """Repository for Game model operations."""

    def __init__(self, db: Session):
        super().__init__(Game, db)

    def find_by_igdb_id(self, igdb_id: int) -> Optional[Game]:
        """Find the row linked to an IGDB game id."""
        return self.where_first(Game.igdb_id == igdb_id)

    def find_by_slug(self, slug: str) -> Optional[Game]:
        if not slug:
            return None
        return self.where_first(Game.slug == slug)

    def count_linked(self) -> int:
        """Count rows carrying an IGDB id."""
        return self.count(Game.igdb_id.isnot(None))

    def delete_unlinked(self) -> int:
        """
        Delete every row without an IGDB id.

        Returns:
            Number of rows deleted (not yet committed)
        """
        return self.query().filter(Game.igdb_id.is_(None)).delete(synchronize_session=False)
