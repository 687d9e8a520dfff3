"""
Database configuration and session management.

The engine is created lazily so that importing the application (for
example from tests that bind their own in-memory SQLite session) never
needs the production database driver.
"""
import os
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from app.core.config import settings

        url = settings.DATABASE_URL
        echo = os.getenv("SQL_ECHO", "false").lower() == "true"

        if url.startswith("sqlite"):
            _engine = create_engine(url, connect_args={"check_same_thread": False}, echo=echo)
        else:
            _engine = create_engine(
                url,
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,  # Verify connections before using
                echo=echo,
            )
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def SessionLocal() -> Session:
    """Open a new session bound to the application engine."""
    get_engine()
    return _SessionLocal()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage in FastAPI:
    ```python
    @router.get("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        ...
    ```
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables."""
    from app.models import Base
    Base.metadata.create_all(bind=get_engine(), checkfirst=True)
