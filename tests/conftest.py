"""Shared pytest fixtures for catalog and sync tests."""
import os
import sys
import json
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Settings are read once at import time, so pin the test environment first
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SYNC_RETRY_ATTEMPTS"] = "1"
os.environ["API_KEY"] = ""
os.environ["LOG_JSON"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

from app.services.catalog.igdb_client import IgdbClient  # noqa: E402
from app.services.catalog.records import ExternalGameRecord  # noqa: E402

TEST_CLIENT_ID = "test-client-id"
TEST_CLIENT_SECRET = "test-client-secret"


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from app.models import Base

    # StaticPool keeps the single in-memory connection alive and shared with
    # the TestClient thread
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


# =============================================================================
# CATALOG RECORDS & FAKES
# =============================================================================

def make_record(game_id: int, name: Optional[str] = None, **fields) -> ExternalGameRecord:
    """Build an ExternalGameRecord the way IGDB would return it.

    Usage:
        record = make_record(7346, "Halo 3", rating=91.2, genres=[{"id": 5, "name": "Shooter"}])
    """
    payload = {"id": game_id}
    if name is not None:
        payload["name"] = name
    payload.update(fields)
    return ExternalGameRecord.model_validate(payload)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalog:
    """
    In-memory stand-in for IgdbClient used by reconciler tests.

    Every page-fetch method returns ``records`` (or raises ``error``) and
    logs its call so tests can assert nothing was fetched.
    """

    def __init__(self, records: Optional[List[ExternalGameRecord]] = None, configured: bool = True):
        self.records = list(records or [])
        self.configured = configured
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    def is_configured(self) -> bool:
        return self.configured

    def missing_credentials(self) -> List[str]:
        return [] if self.configured else ["IGDB_CLIENT_ID", "IGDB_CLIENT_SECRET"]

    async def _page(self, name: str, *args) -> List[ExternalGameRecord]:
        self.calls.append((name, *args))
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def get_popular_games(self, limit: int = 20, include_malformed: bool = False):
        return (await self._page("popular", limit))[:limit]

    async def search_games(self, term: str, limit: int = 20, include_malformed: bool = False):
        return (await self._page("search", term, limit))[:limit]

    async def get_games_by_genre(self, genre_id: int, limit: int = 20, include_malformed: bool = False):
        return (await self._page("genre", genre_id, limit))[:limit]

    async def get_games_by_platform(self, platform_id: int, limit: int = 20, include_malformed: bool = False):
        return (await self._page("platform", platform_id, limit))[:limit]

    async def get_game_by_slug(self, slug: str, include_malformed: bool = False):
        records = await self._page("slug", slug)
        return next((r for r in records if r.slug == slug), None)


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


# =============================================================================
# IGDB HTTP STUB
# =============================================================================

class IgdbStub:
    """
    httpx MockTransport handler emulating the Twitch token endpoint and IGDB.

    ``responses`` maps an IGDB endpoint name (``games``, ``genres``...) to
    either a JSON-serialisable payload, an ``httpx.Response``, or a callable
    taking the request and returning one of those.
    """

    def __init__(self, expires_in: int = 3600):
        self.expires_in = expires_in
        self.token_response: Optional[httpx.Response] = None
        self.responses: Dict[str, object] = {}
        self.requests: List[httpx.Request] = []
        self.token_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/oauth2/token":
            self.token_requests += 1
            if self.token_response is not None:
                return self.token_response
            return httpx.Response(
                200,
                json={
                    "access_token": f"token-{self.token_requests}",
                    "expires_in": self.expires_in,
                    "token_type": "bearer",
                },
            )

        endpoint = request.url.path.rsplit("/", 1)[-1]
        response = self.responses.get(endpoint, [])
        if callable(response) and not isinstance(response, httpx.Response):
            response = response(request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, content=json.dumps(response).encode(), headers={"Content-Type": "application/json"})

    def api_requests(self, endpoint: Optional[str] = None) -> List[httpx.Request]:
        """Requests that reached IGDB (token exchanges excluded)."""
        return [
            r for r in self.requests
            if r.url.path != "/oauth2/token"
            and (endpoint is None or r.url.path.endswith(f"/{endpoint}"))
        ]


@pytest.fixture
def igdb_stub() -> IgdbStub:
    return IgdbStub()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_client(igdb_stub: IgdbStub, clock: FakeClock) -> Callable[..., IgdbClient]:
    """Factory building an IgdbClient wired to the stub and the fake clock."""
    def factory(
        client_id: str = TEST_CLIENT_ID,
        client_secret: str = TEST_CLIENT_SECRET,
        handler=None,
        **kwargs,
    ) -> IgdbClient:
        transport = httpx.MockTransport(handler or igdb_stub)
        return IgdbClient(
            client_id,
            client_secret,
            http_client=httpx.AsyncClient(transport=transport),
            clock=clock,
            **kwargs,
        )
    return factory


@pytest.fixture
def igdb_client(make_client) -> IgdbClient:
    return make_client()


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="function")
def test_client(db_session, igdb_client):
    """
    Create FastAPI TestClient with a fresh database and a stubbed IGDB.

    Note: We don't use context manager (with TestClient) because it conflicts
    with Prometheus middleware that's added during app module initialization.

    Usage:
        def test_endpoint(test_client, igdb_stub):
            igdb_stub.responses["games"] = [{"id": 1, "name": "Halo 3"}]
            response = test_client.get("/api/v1/igdb/search?q=halo")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from app.main import app
    from app.core.database import get_db
    from app.api.routes.catalog import get_catalog

    test_db_session = db_session

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_catalog] = lambda: igdb_client

    client = TestClient(app, raise_server_exceptions=False)
    yield client

    app.dependency_overrides.clear()
