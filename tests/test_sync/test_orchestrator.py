"""Integration tests for GameSyncOrchestrator.

Test Strategy:
1. Test create / update / backfill paths of the per-record algorithm
2. Test idempotence and the one-row-per-igdb_id invariant across passes
3. Test per-record failure isolation (validation and database errors)
4. Test the configuration gate and page-level failures
5. Test metadata tracking, stats, status and cleanup

Each test follows the pattern:
- Given: Database with sample games and a fake (or stubbed) catalog
- When: GameSyncOrchestrator method is called
- Then: Correct SyncResult and database state
"""
import sys
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import FakeCatalog, make_record

from app.models import Game, SyncMetadata
from app.services.catalog.exceptions import (
    CatalogRecordNotFound,
    ConfigurationError,
    ParseError,
    TransportError,
)
from app.services.sync.orchestrator import GameSyncOrchestrator
from app.services.sync.requests import GenreSync, PlatformSync, PopularSync, SearchSync


def page(count: int, start_id: int = 100, prefix: str = "Game"):
    return [
        make_record(start_id + i, f"{prefix} {i}", slug=f"{prefix.lower()}-{i}", rating=80.0 + i)
        for i in range(count)
    ]


def add_game(db: Session, **fields) -> Game:
    game = Game(**fields)
    db.add(game)
    db.commit()
    return game


class TestReconciliation:
    """Per-record create / update / backfill."""

    # Create path
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_search_end_to_end_creates_rows(self, db_session: Session):
        """Five distinct records become five active, linked games."""
        records = [
            make_record(1877, "Cyberpunk 2077", slug="cyberpunk-2077", rating=78.0),
            make_record(5623, "Cyberpunk", slug="cyberpunk"),
            make_record(9210, "Cyberpunk 2020", slug="cyberpunk-2020"),
            make_record(11101, "Cyberpunk: Edgerunners", slug="cyberpunk-edgerunners"),
            make_record(20001, "Cyberpunk Red", slug="cyberpunk-red"),
        ]
        catalog = FakeCatalog(records)
        orchestrator = GameSyncOrchestrator(db_session, catalog)

        result = await orchestrator.sync(SearchSync(term="cyberpunk", limit=5))

        assert result.total_synced == 5
        assert result.total_errors == 0
        assert result.created == 5
        assert catalog.calls == [("search", "cyberpunk", 5)]

        games = db_session.query(Game).all()
        assert sorted(g.igdb_id for g in games) == sorted(r.id for r in records)
        assert all(g.is_active for g in games)
        assert not any(g.is_multiplayer for g in games)

        cp = db_session.query(Game).filter(Game.igdb_id == 1877).one()
        assert cp.slug == "cyberpunk-2077"
        assert cp.name == "Cyberpunk 2077"
        assert cp.rating == 7.8

    # Update path
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_existing_linked_game_refreshed_not_duplicated(self, db_session: Session):
        existing = add_game(
            db_session, igdb_id=7346, slug="halo-3-legacy", name="Halo 3 (Legacy Name)", rating=5.0
        )
        catalog = FakeCatalog([make_record(7346, "Halo 3", slug="halo-3", rating=91.0, rating_count=1500)])

        result = await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=1)

        assert result.updated == 1 and result.created == 0
        assert db_session.query(Game).count() == 1
        db_session.refresh(existing)
        assert existing.rating == 9.1
        assert existing.igdb_rating_count == 1500
        # Identity never changes on update
        assert existing.slug == "halo-3-legacy"
        assert existing.name == "Halo 3 (Legacy Name)"

    @pytest.mark.asyncio
    async def test_slug_collision_backfills_igdb_id(self, db_session: Session):
        """A pre-integration row with the derived slug gets linked instead of duplicated."""
        existing = add_game(db_session, igdb_id=None, slug="halo-3", name="Halo 3")
        catalog = FakeCatalog([make_record(999, "Halo 3")])

        result = await GameSyncOrchestrator(db_session, catalog).sync(PopularSync(limit=1))

        assert result.updated == 1
        assert db_session.query(Game).count() == 1
        db_session.refresh(existing)
        assert existing.igdb_id == 999

    @pytest.mark.asyncio
    async def test_catalog_slug_used_as_second_fallback(self, db_session: Session):
        existing = add_game(db_session, igdb_id=None, slug="doom--1", name="DOOM (2016)")
        catalog = FakeCatalog([make_record(7351, "DOOM", slug="doom--1")])

        await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=1)

        db_session.refresh(existing)
        assert existing.igdb_id == 7351
        assert db_session.query(Game).count() == 1

    @pytest.mark.asyncio
    async def test_slug_linked_to_other_id_keeps_identity(self, db_session: Session):
        existing = add_game(db_session, igdb_id=1, slug="tetris", name="Tetris")
        catalog = FakeCatalog([make_record(2, "Tetris", rating=70.0)])

        result = await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=1)

        assert result.updated == 1
        db_session.refresh(existing)
        assert existing.igdb_id == 1
        assert existing.rating == 7.0

    @pytest.mark.asyncio
    async def test_name_collision_within_page_first_writer_wins(self, db_session: Session):
        """Second record resolving to the same slug updates the first row."""
        catalog = FakeCatalog([
            make_record(10, "Tetris", rating=60.0),
            make_record(11, "Tetris", rating=90.0),
        ])

        result = await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=2)

        assert result.created == 1
        assert result.updated == 1
        game = db_session.query(Game).one()
        assert game.igdb_id == 10
        assert game.rating == 9.0


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_second_pass_only_updates(self, db_session: Session):
        catalog = FakeCatalog(page(5))
        orchestrator = GameSyncOrchestrator(db_session, catalog)

        first = await orchestrator.sync_popular(limit=5)
        snapshot = {g.igdb_id: (g.id, g.slug, g.rating) for g in db_session.query(Game).all()}
        second = await orchestrator.sync_popular(limit=5)

        assert first.created == 5
        assert second.created == 0
        assert second.updated == 5
        assert {g.igdb_id: (g.id, g.slug, g.rating) for g in db_session.query(Game).all()} == snapshot

    @pytest.mark.asyncio
    async def test_at_most_one_row_per_igdb_id_across_modes(self, db_session: Session):
        catalog = FakeCatalog(page(4))
        orchestrator = GameSyncOrchestrator(db_session, catalog)

        await orchestrator.sync(PopularSync(limit=4))
        await orchestrator.sync(GenreSync(genre_id=5, limit=4))
        catalog.records = page(6)
        await orchestrator.sync(PlatformSync(platform_id=6, limit=6))

        ids = [row.igdb_id for row in db_session.query(Game.igdb_id).all()]
        assert len(ids) == len(set(ids)) == 6

    @pytest.mark.asyncio
    async def test_idempotent_through_real_client(self, db_session: Session, igdb_client, igdb_stub):
        """With the response cache in play the second pass is pure updates."""
        igdb_stub.responses["popularity_primitives"] = [{"game_id": 100 + i} for i in range(3)]
        igdb_stub.responses["games"] = [
            {"id": 100 + i, "name": f"Game {i}", "slug": f"game-{i}"} for i in range(3)
        ]
        orchestrator = GameSyncOrchestrator(db_session, igdb_client)

        first = await orchestrator.sync_popular(limit=3)
        second = await orchestrator.sync_popular(limit=3)

        assert (first.created, second.created, second.updated) == (3, 0, 3)
        assert len(igdb_stub.api_requests("games")) == 1


class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_malformed_record_does_not_abort_page(self, db_session: Session):
        records = page(10)
        records[4] = make_record(104)  # no name
        catalog = FakeCatalog(records)

        result = await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=10)

        assert result.total_found == 10
        assert result.total_synced == 9
        assert result.total_errors == 1
        assert result.errors[0].external_id == 104
        assert result.errors[0].reason == "missing name"
        assert db_session.query(Game).count() == 9
        assert db_session.query(Game).filter(Game.igdb_id == 104).count() == 0

    @pytest.mark.asyncio
    async def test_malformed_field_through_real_client_fails_only_that_record(
        self, db_session: Session, igdb_client, igdb_stub
    ):
        igdb_stub.responses["games"] = [
            {"id": 1, "name": "Halo 3"},
            {"id": 2, "name": "Doom", "rating": "not-a-number"},
            {"id": 3, "name": "Quake"},
        ]

        result = await GameSyncOrchestrator(db_session, igdb_client).sync_search("a", 3)

        assert result.total_found == 3
        assert result.created == 2
        assert result.total_errors == 1
        assert result.status == "partial"
        error = result.errors[0]
        assert (error.external_id, error.name) == (2, "Doom")
        assert "rating" in error.reason
        assert sorted(g.igdb_id for g in db_session.query(Game).all()) == [1, 3]

        metadata = db_session.query(SyncMetadata).filter_by(data_type="search").one()
        assert metadata.last_sync_status == "partial"
        assert metadata.records_failed == 1

    @pytest.mark.asyncio
    async def test_malformed_slug_record_is_a_failed_outcome(self, db_session: Session, igdb_client, igdb_stub):
        igdb_stub.responses["games"] = [{"id": 7346, "name": "Halo 3", "rating_count": "lots"}]

        result = await GameSyncOrchestrator(db_session, igdb_client).sync_game_by_slug("halo-3")

        assert (result.total_found, result.failed) == (1, 1)
        assert result.errors[0].external_id == 7346
        assert db_session.query(Game).count() == 0

    @pytest.mark.asyncio
    async def test_database_error_rolls_back_only_that_record(self, db_session: Session, monkeypatch):
        catalog = FakeCatalog(page(3))
        orchestrator = GameSyncOrchestrator(db_session, catalog)

        original_create = orchestrator.games.create

        def flaky_create(**fields):
            if fields["igdb_id"] == 101:
                raise RuntimeError("disk full")
            return original_create(**fields)

        monkeypatch.setattr(orchestrator.games, "create", flaky_create)

        result = await orchestrator.sync_popular(limit=3)

        assert result.total_synced == 2
        assert result.errors[0].external_id == 101
        assert "disk full" in result.errors[0].reason
        assert sorted(g.igdb_id for g in db_session.query(Game).all()) == [100, 102]


class TestPassLevelBehaviour:

    # Configuration gate
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    @pytest.mark.parametrize("request_", [
        PopularSync(limit=5),
        SearchSync(term="halo"),
        GenreSync(genre_id=5),
        PlatformSync(platform_id=6),
    ])
    async def test_unconfigured_catalog_writes_nothing(self, db_session: Session, request_):
        catalog = FakeCatalog(page(5), configured=False)

        with pytest.raises(ConfigurationError):
            await GameSyncOrchestrator(db_session, catalog).sync(request_)

        assert catalog.calls == []
        assert db_session.query(Game).count() == 0
        assert db_session.query(SyncMetadata).count() == 0

    @pytest.mark.asyncio
    async def test_unconfigured_real_client_makes_no_requests(self, db_session: Session, make_client, igdb_stub):
        client = make_client(client_id="", client_secret="")

        with pytest.raises(ConfigurationError):
            await GameSyncOrchestrator(db_session, client).sync_search("halo")

        assert igdb_stub.requests == []
        assert db_session.query(Game).count() == 0

    @pytest.mark.asyncio
    async def test_unknown_request_type(self, db_session: Session):
        with pytest.raises(TypeError):
            await GameSyncOrchestrator(db_session, FakeCatalog()).sync("popular")

    # Page failures
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [TransportError("timed out"), ParseError("bad payload")])
    async def test_page_error_propagates_and_is_recorded(self, db_session: Session, error):
        catalog = FakeCatalog(page(3))
        catalog.error = error

        with pytest.raises(type(error)):
            await GameSyncOrchestrator(db_session, catalog).sync_popular(limit=3)

        assert db_session.query(Game).count() == 0
        metadata = db_session.query(SyncMetadata).one()
        assert metadata.data_type == "popular"
        assert metadata.last_sync_status == "failed"
        assert metadata.error_message == str(error)

    # Metadata, stats, status
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_metadata_written_per_mode(self, db_session: Session):
        records = page(3)
        records[0] = make_record(100)
        orchestrator = GameSyncOrchestrator(db_session, FakeCatalog(records))

        await orchestrator.sync_popular(limit=3)
        await orchestrator.sync_popular(limit=3)

        metadata = db_session.query(SyncMetadata).one()
        assert metadata.source == "igdb"
        assert metadata.last_sync_status == "partial"
        assert metadata.records_processed == 3
        assert metadata.records_created == 0
        assert metadata.records_updated == 2
        assert metadata.records_failed == 1
        assert metadata.sync_duration_ms is not None

    @pytest.mark.asyncio
    async def test_sync_stats(self, db_session: Session):
        orchestrator = GameSyncOrchestrator(db_session, FakeCatalog(page(3)))
        assert orchestrator.get_sync_stats() == {"total_games": 0, "games_with_igdb_id": 0, "sync_percentage": 0}

        add_game(db_session, igdb_id=None, slug="legacy", name="Legacy")
        await orchestrator.sync_popular(limit=3)

        assert orchestrator.get_sync_stats() == {"total_games": 4, "games_with_igdb_id": 3, "sync_percentage": 75}

    @pytest.mark.asyncio
    async def test_sync_percentage_rounds_half_up(self, db_session: Session):
        for i in range(7):
            add_game(db_session, igdb_id=None, slug=f"legacy-{i}", name=f"Legacy {i}")
        orchestrator = GameSyncOrchestrator(db_session, FakeCatalog(page(1)))
        await orchestrator.sync_popular(limit=1)

        # 1 of 8 linked is 12.5%
        assert orchestrator.get_sync_stats()["sync_percentage"] == 13

    @pytest.mark.asyncio
    async def test_sync_status_health(self, db_session: Session):
        catalog = FakeCatalog(page(2))
        orchestrator = GameSyncOrchestrator(db_session, catalog)
        assert orchestrator.get_sync_status()["health_status"] == "unknown"

        await orchestrator.sync_popular(limit=2)
        status = orchestrator.get_sync_status()
        assert status["health_status"] == "healthy"
        assert status["modes"]["popular"]["records_created"] == 2

        catalog.error = TransportError("down")
        with pytest.raises(TransportError):
            await orchestrator.sync_search("x")
        assert orchestrator.get_sync_status()["health_status"] == "degraded"

    # Single game & cleanup
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_sync_game_by_slug(self, db_session: Session):
        catalog = FakeCatalog([make_record(7346, "Halo 3", slug="halo-3")])
        orchestrator = GameSyncOrchestrator(db_session, catalog)

        result = await orchestrator.sync_game_by_slug("halo-3")
        assert result.created == 1

        with pytest.raises(CatalogRecordNotFound):
            await orchestrator.sync_game_by_slug("halo-99")

    @pytest.mark.asyncio
    async def test_cleanup_unlinked_games(self, db_session: Session):
        add_game(db_session, igdb_id=None, slug="legacy-1", name="Legacy 1")
        add_game(db_session, igdb_id=None, slug="legacy-2", name="Legacy 2")
        catalog = FakeCatalog(page(2))

        outcome = await GameSyncOrchestrator(db_session, catalog).cleanup_unlinked_games(resync_limit=2)

        assert outcome["deleted"] == 2
        assert outcome["sync"]["total_synced"] == 2
        assert db_session.query(Game).filter(Game.igdb_id.is_(None)).count() == 0
        assert catalog.calls == [("popular", 2)]
