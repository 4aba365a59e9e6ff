"""Diff the collected relations to find accounts that do not follow back."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .collector.models import RelationSnapshot, UserRecord


LOGGER = logging.getLogger(__name__)

NO_FULL_NAME = "No full name"

RecordSource = Union[RelationSnapshot, Sequence[UserRecord]]


def _records(source: RecordSource) -> Sequence[UserRecord]:
    if isinstance(source, RelationSnapshot):
        return source.records
    return source


def reconcile(following: RecordSource, followers: RecordSource) -> List[UserRecord]:
    """Return following entries whose username never appears among followers.

    Matching is exact and case-sensitive. Order and duplicates of ``following``
    are kept as-is.
    """

    follower_usernames = {record.username for record in _records(followers)}
    return [record for record in _records(following) if record.username not in follower_usernames]


def format_entry(record: UserRecord) -> str:
    return f"{record.username} ({record.full_name or NO_FULL_NAME})"


def format_entries(records: Iterable[UserRecord]) -> List[str]:
    return [format_entry(record) for record in records]


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ReconciliationReport:
    """Everything a run produced, in a shape that serializes losslessly."""

    followers: List[UserRecord]
    following: List[UserRecord]
    non_followers: List[UserRecord]
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        followers: RecordSource,
        following: RecordSource,
        *,
        generated_at: Optional[datetime] = None,
    ) -> "ReconciliationReport":
        report = cls(
            followers=list(_records(followers)),
            following=list(_records(following)),
            non_followers=reconcile(following, followers),
        )
        if generated_at is not None:
            report.generated_at = generated_at
        LOGGER.debug(
            "Reconciled %d following against %d followers: %d non-reciprocal",
            len(report.following),
            len(report.followers),
            len(report.non_followers),
        )
        return report

    @property
    def timestamp(self) -> str:
        return _iso_timestamp(self.generated_at)

    def lines(self) -> List[str]:
        return format_entries(self.non_followers)

    def to_dict(self) -> Dict[str, object]:
        return {
            "followers": [record.as_dict() for record in self.followers],
            "following": [record.as_dict() for record in self.following],
            "nonFollowers": [record.as_dict() for record in self.non_followers],
            "timestamp": self.timestamp,
        }
