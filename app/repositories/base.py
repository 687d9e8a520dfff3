"""
Generic data access shared by the catalog repositories.

Repositories stage changes on the session; callers decide when a unit of
work ends with ``save()`` or ``rollback()``. The sync reconciler relies on
that to commit each catalog record on its own.

Example:
    class GameRepository(BaseRepository[Game]):
        def find_by_slug(self, slug: str) -> Optional[Game]:
            return self.where_first(Game.slug == slug)
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from app.models.base import utcnow

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Session-bound access to one model type.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Writes (staged until save)
    # ========================================================================

    def create(self, **kwargs) -> T:
        """Add a new row to the session and return it."""
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    def update(self, instance: T, **kwargs) -> T:
        """Set the given columns on a loaded row and bump ``updated_at``."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        if hasattr(instance, "updated_at"):
            instance.updated_at = utcnow()
        return instance

    # ========================================================================
    # Reads
    # ========================================================================

    def query(self) -> Query:
        return self.db.query(self.model_type)

    def where_first(self, *criterion) -> Optional[T]:
        """First row matching the SQLAlchemy expressions, or None."""
        return self.query().filter(*criterion).first()

    def count(self, *criterion) -> int:
        """Count rows, optionally restricted by SQLAlchemy expressions."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0

    # ========================================================================
    # Unit of work
    # ========================================================================

    def save(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
