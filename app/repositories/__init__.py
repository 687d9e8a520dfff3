"""
Repository layer for data access.

Usage:
    from app.repositories import GameRepository
    from app.core.database import SessionLocal

    db = SessionLocal()
    game_repo = GameRepository(db)
    game = game_repo.find_by_igdb_id(7346)
    db.close()
"""

from app.repositories.base import BaseRepository
from app.repositories.game_repository import GameRepository

__all__ = [
    "BaseRepository",
    "GameRepository",
]
