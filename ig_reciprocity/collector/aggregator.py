"""Owner of the followers and following snapshots for one run."""
from __future__ import annotations

import logging
import random
import time
from typing import Dict, Optional, Tuple

from .models import Relation, RelationSnapshot
from .page_executor import PageExecutor
from .pagination import PaginationController, PaginationSettings


LOGGER = logging.getLogger(__name__)

COLLECTION_ORDER = (Relation.FOLLOWERS, Relation.FOLLOWING)


class CollectionAggregator:
    """Holds one snapshot per relation; each is written by a single run, then frozen.

    No validation or deduplication happens here. Relations are collected one
    after the other with a short cooldown in between.
    """

    def __init__(
        self,
        settings: Optional[PaginationSettings] = None,
        *,
        cooldown: Tuple[float, float] = (2.0, 3.0),
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings or PaginationSettings()
        self._cooldown = cooldown
        self._rng = rng or random.Random()
        self._snapshots: Dict[Relation, RelationSnapshot] = {}
        self.controllers: Dict[Relation, PaginationController] = {}

    @property
    def followers(self) -> Optional[RelationSnapshot]:
        return self._snapshots.get(Relation.FOLLOWERS)

    @property
    def following(self) -> Optional[RelationSnapshot]:
        return self._snapshots.get(Relation.FOLLOWING)

    def snapshot(self, relation: Relation) -> Optional[RelationSnapshot]:
        return self._snapshots.get(relation)

    def is_collected(self, relation: Relation) -> bool:
        snapshot = self._snapshots.get(relation)
        return snapshot is not None and snapshot.frozen

    def collect(self, executor: PageExecutor, subject_id: str, relation: Relation) -> RelationSnapshot:
        """Run one controller for ``relation`` and freeze the resulting snapshot."""

        if relation in self._snapshots:
            raise RuntimeError(f"{relation.value} has already been collected for this run")

        snapshot = RelationSnapshot(relation=relation)
        self._snapshots[relation] = snapshot
        controller = PaginationController(
            executor,
            subject_id,
            relation,
            self._settings,
            rng=self._rng,
        )
        self.controllers[relation] = controller
        try:
            controller.run(snapshot)
        finally:
            # Frozen on every exit so callers can still persist what was gathered.
            snapshot.freeze(
                complete=controller.complete,
                stop_reason=controller.stop_reason or "aborted",
            )
        return snapshot

    def collect_all(self, executor: PageExecutor, subject_id: str) -> Tuple[RelationSnapshot, RelationSnapshot]:
        """Collect followers, cool down, then collect following."""

        for index, relation in enumerate(COLLECTION_ORDER):
            if index:
                self._cool_down()
            self.collect(executor, subject_id, relation)
        return self._snapshots[Relation.FOLLOWERS], self._snapshots[Relation.FOLLOWING]

    def _cool_down(self) -> None:
        delay = self._rng.uniform(*self._cooldown)
        LOGGER.debug("Delay %.2fs (between-relations)", delay)
        time.sleep(delay)
