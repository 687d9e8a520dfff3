"""
Database models.

Usage:
    from app.models import Base, Game, SyncMetadata
"""
from app.models.base import Base
from app.models.game import Game
from app.models.sync_metadata import SyncMetadata

__all__ = [
    "Base",
    "Game",
    "SyncMetadata",
]
