"""
IGDB Game Sync Service

Reconciles IGDB catalog pages into the local games table.

Key components:
- requests: Typed sync requests (popular, search, genre, platform)
- game_mapper: IGDB record -> Game columns
- orchestrator: Runs sync passes and records their outcome
- results: Per-record outcomes and the aggregate SyncResult
"""
from app.services.sync.orchestrator import GameSyncOrchestrator
from app.services.sync.requests import (
    GenreSync,
    PlatformSync,
    PopularSync,
    SearchSync,
    SyncMode,
    SyncRequest,
    build_sync_request,
)
from app.services.sync.results import RecordError, RecordOutcome, SyncResult

__all__ = [
    "GameSyncOrchestrator",
    "GenreSync",
    "PlatformSync",
    "PopularSync",
    "RecordError",
    "RecordOutcome",
    "SearchSync",
    "SyncMode",
    "SyncRequest",
    "SyncResult",
    "build_sync_request",
]
