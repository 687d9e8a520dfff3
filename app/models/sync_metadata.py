"""Sync audit trail."""
import uuid

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from app.models.base import Base


class SyncMetadata(Base):
    """Tracks the last sync pass per source and mode.

    One row per (source, data_type), e.g. ("igdb", "popular"), overwritten at
    the end of every pass:
    - Last sync time (started and completed)
    - Outcome (success, partial, failed)
    - Records processed vs created/updated vs failed
    - Sync duration
    """
    __tablename__ = "sync_metadata"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    source = Column(String(32), nullable=False)  # igdb
    data_type = Column(String(32), nullable=False)  # popular, search, genre, platform, slug
    last_sync_started_at = Column(DateTime, nullable=True)
    last_sync_completed_at = Column(DateTime, nullable=True, index=True)
    last_sync_status = Column(String(16), nullable=True)  # success, partial, failed
    records_processed = Column(Integer, nullable=False, default=0)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    sync_duration_ms = Column(Integer, nullable=True)

    __table_args__ = (
        UniqueConstraint('source', 'data_type', name='uq_sync_metadata_source_type'),
        Index('ix_sync_metadata_status', 'last_sync_status'),
    )
