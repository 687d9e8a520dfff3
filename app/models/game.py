"""
Local game catalog model.

A Game row is created the first time the sync reconciler sees a catalog
record and refreshed on every later sync that sees it again. ``igdb_id`` is
nullable (rows that predate the catalog integration) and therefore not
unique at the schema level; the reconciler's lookup-before-create policy
keeps it one-row-per-id.
"""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, JSON, String, Text

from app.models.base import Base, utcnow


class Game(Base):
    """A game offered on the platform."""
    __tablename__ = "games"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    igdb_id = Column(Integer, nullable=True, index=True)  # IGDB game id
    slug = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)
    genre = Column(String(100), nullable=True)  # first IGDB genre
    platform = Column(String(100), nullable=True)  # first IGDB platform
    release_date = Column(DateTime, nullable=True)
    rating = Column(Float, nullable=True)  # 0-10

    # Mirrored catalog fields
    igdb_slug = Column(String(255), nullable=True)
    igdb_rating = Column(Float, nullable=True)  # 0-10
    igdb_rating_count = Column(Integer, nullable=True)
    igdb_cover_url = Column(String(512), nullable=True)
    igdb_screenshots = Column(JSON, nullable=False, default=list)
    igdb_videos = Column(JSON, nullable=False, default=list)  # YouTube video ids

    is_active = Column(Boolean, nullable=False, default=True)
    is_multiplayer = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('ix_games_is_active', 'is_active'),
    )

    def __repr__(self):
        return f"<Game {self.slug} igdb_id={self.igdb_id}>"
