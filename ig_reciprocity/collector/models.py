"""Data containers shared by the extractor, controller and aggregator."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union


class Relation(str, Enum):
    FOLLOWERS = "followers"
    FOLLOWING = "following"


@dataclass(frozen=True)
class UserRecord:
    username: str
    full_name: str = ""
    id: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"username": self.username, "full_name": self.full_name, "id": self.id}


@dataclass(frozen=True)
class ExtractionSuccess:
    records: List[UserRecord]
    has_next_page: bool
    end_cursor: Optional[str]
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class ExtractionFailure:
    reason: str
    success: bool = field(default=False, init=False)


ExtractionResult = Union[ExtractionSuccess, ExtractionFailure]


@dataclass
class FetchAttempt:
    """Retry bookkeeping for the page currently being requested."""

    retry_count: int = 0
    backoff_delay: float = 0.0

    def reset(self) -> None:
        self.retry_count = 0
        self.backoff_delay = 0.0


class SnapshotFrozenError(RuntimeError):
    """Raised when a finished snapshot is written to again."""


@dataclass
class RelationSnapshot:
    """Ordered records for one relation, frozen once its collection run ends."""

    relation: Relation
    records: List[UserRecord] = field(default_factory=list)
    pages_fetched: int = 0
    complete: bool = False
    stop_reason: Optional[str] = None
    _frozen: bool = field(default=False, repr=False)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append_page(self, records: Sequence[UserRecord]) -> None:
        if self._frozen:
            raise SnapshotFrozenError(f"{self.relation.value} snapshot is already frozen")
        self.records.extend(records)
        self.pages_fetched += 1

    def freeze(self, *, complete: bool, stop_reason: str) -> None:
        if self._frozen:
            raise SnapshotFrozenError(f"{self.relation.value} snapshot is already frozen")
        self.complete = complete
        self.stop_reason = stop_reason
        self._frozen = True

    def usernames(self) -> List[str]:
        return [record.username for record in self.records]

    def __len__(self) -> int:
        return len(self.records)
