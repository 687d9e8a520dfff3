"""Per-record outcomes and the aggregate result of a sync pass."""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

CREATED = "created"
UPDATED = "updated"
FAILED = "failed"


@dataclass(frozen=True)
class RecordError:
    external_id: Optional[int]
    name: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"external_id": self.external_id, "name": self.name, "reason": self.reason}


@dataclass(frozen=True)
class RecordOutcome:
    """What happened to one external record during a pass."""
    status: str  # created / updated / failed
    external_id: Optional[int]
    name: Optional[str] = None
    reason: Optional[str] = None
    game_id: Optional[str] = None

    @classmethod
    def created(cls, external_id: int, name: str, game_id: str) -> "RecordOutcome":
        return cls(CREATED, external_id, name, game_id=game_id)

    @classmethod
    def updated(cls, external_id: int, name: str, game_id: str) -> "RecordOutcome":
        return cls(UPDATED, external_id, name, game_id=game_id)

    @classmethod
    def failed(cls, external_id: Optional[int], name: Optional[str], reason: str) -> "RecordOutcome":
        return cls(FAILED, external_id, name, reason=reason)


@dataclass(frozen=True)
class SyncResult:
    """
    Aggregate of one sync pass.

    ``total_synced + total_errors == total_found`` always holds because the
    result is only ever built by folding one outcome per fetched record.
    """
    total_found: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: tuple[RecordError, ...] = ()

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[RecordOutcome]) -> "SyncResult":
        outcomes = list(outcomes)
        return cls(
            total_found=len(outcomes),
            created=sum(1 for o in outcomes if o.status == CREATED),
            updated=sum(1 for o in outcomes if o.status == UPDATED),
            failed=sum(1 for o in outcomes if o.status == FAILED),
            errors=tuple(
                RecordError(o.external_id, o.name, o.reason or "unknown error")
                for o in outcomes
                if o.status == FAILED
            ),
        )

    @property
    def total_synced(self) -> int:
        return self.created + self.updated

    @property
    def total_errors(self) -> int:
        return self.failed

    @property
    def status(self) -> str:
        """success / partial / failed, as written to sync metadata."""
        if self.failed == 0:
            return "success"
        if self.total_synced > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_found": self.total_found,
            "total_synced": self.total_synced,
            "total_errors": self.total_errors,
            "created": self.created,
            "updated": self.updated,
            "errors": [e.to_dict() for e in self.errors],
        }
