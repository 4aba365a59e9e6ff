"""Cursor-paginated retrieval of one relation with per-page retries.

A run walks the states below, one transition per step::

    START -> REQUEST -> SUCCESS -> ADVANCE -> REQUEST ...
                     -> FAIL -> RETRY -> REQUEST
                             -> ABORT -> END
             SUCCESS -> END

Two delays are involved and they never share a code path: the retry backoff
grows with the retry count of the page being fetched, while the pacing delay
between successful pages is a flat random interval.
"""
from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

from ..errors import (
    CollectionError,
    EmptyPageError,
    ExtractionFailedError,
    NavigationError,
    RetriesExhaustedError,
)
from .extractor import ResponseExtractor
from .models import ExtractionFailure, ExtractionSuccess, FetchAttempt, Relation, RelationSnapshot
from .page_executor import PageExecutor, WaitCondition


LOGGER = logging.getLogger(__name__)

QUERY_HASHES: Dict[Relation, str] = {
    Relation.FOLLOWERS: "c76146de99bb02f6415203be841dd25a",
    Relation.FOLLOWING: "d04b0a864b4b54837c0d870b0e77e076",
}

READ_BODY_SCRIPT = "return document.body ? document.body.innerText : '';"

# Characters encodeURIComponent leaves untouched.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class PaginationSettings:
    base_url: str = "https://www.instagram.com"
    page_size: int = 24
    max_pages: int = 100
    max_retries: int = 5
    navigation_timeout: float = 45.0
    neutral_page_timeout: float = 30.0
    settle_delay: Tuple[float, float] = (3.0, 5.0)
    page_pacing: Tuple[float, float] = (3.0, 7.0)
    backoff_base: float = 10.0
    backoff_factor: float = 1.5
    backoff_cap: float = 30.0
    backoff_jitter: float = 2.0

    def backoff_for(self, retry_count: int) -> float:
        return min(self.backoff_base * (self.backoff_factor ** retry_count), self.backoff_cap)


class FetchState(str, Enum):
    START = "start"
    REQUEST = "request"
    SUCCESS = "success"
    ADVANCE = "advance"
    FAIL = "fail"
    RETRY = "retry"
    ABORT = "abort"
    END = "end"


STOP_LAST_PAGE = "last_page"
STOP_MISSING_CURSOR = "missing_cursor"
STOP_PAGE_CEILING = "page_ceiling"
STOP_RETRIES_EXHAUSTED = "retries_exhausted"


def build_query_url(
    base_url: str,
    relation: Relation,
    subject_id: str,
    cursor: str = "",
    page_size: int = 24,
) -> str:
    variables = {
        "id": subject_id,
        "include_reel": True,
        "fetch_mutual": False,
        "first": page_size,
        "after": cursor,
    }
    encoded = quote(json.dumps(variables, separators=(",", ":")), safe=_URI_COMPONENT_SAFE)
    return f"{base_url.rstrip('/')}/graphql/query/?query_hash={QUERY_HASHES[relation]}&variables={encoded}"


class PaginationController:
    """Drives one relation's cursor loop and appends pages to a snapshot."""

    def __init__(
        self,
        executor: PageExecutor,
        subject_id: str,
        relation: Relation,
        settings: Optional[PaginationSettings] = None,
        *,
        extractor: Optional[ResponseExtractor] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._executor = executor
        self._subject_id = subject_id
        self._relation = relation
        self._settings = settings or PaginationSettings()
        self._extractor = extractor or ResponseExtractor()
        self._rng = rng or random.Random()

        self.state = FetchState.START
        self.history: List[FetchState] = [FetchState.START]
        self.cursor = ""
        self.has_next_page = True
        self.page_number = 0
        self.attempt = FetchAttempt()
        self.stop_reason: Optional[str] = None
        self.last_error: Optional[CollectionError] = None
        self.abort_error: Optional[RetriesExhaustedError] = None
        self._page_result: Optional[ExtractionSuccess] = None

        self._handlers: Dict[FetchState, Callable[[RelationSnapshot], FetchState]] = {
            FetchState.START: self._on_start,
            FetchState.REQUEST: self._on_request,
            FetchState.SUCCESS: self._on_success,
            FetchState.ADVANCE: self._on_advance,
            FetchState.FAIL: self._on_fail,
            FetchState.RETRY: self._on_retry,
            FetchState.ABORT: self._on_abort,
        }

    @property
    def relation(self) -> Relation:
        return self._relation

    @property
    def complete(self) -> bool:
        return self.stop_reason == STOP_LAST_PAGE

    @property
    def max_transitions(self) -> int:
        # Worst case per page: every attempt but the last is REQUEST/FAIL/RETRY,
        # the last one is REQUEST/FAIL/ABORT or REQUEST/SUCCESS/ADVANCE.
        per_page = 3 * self._settings.max_retries + 1
        return self._settings.max_pages * per_page + 2

    def run(self, snapshot: RelationSnapshot) -> RelationSnapshot:
        """Collect every page into ``snapshot``; partial results are kept."""

        if self.state is not FetchState.START:
            raise RuntimeError("PaginationController instances are single-use")

        label = self._relation.value
        LOGGER.info("=" * 80)
        LOGGER.info("📥 FETCHING %s for user %s", label.upper(), self._subject_id)
        LOGGER.info("=" * 80)

        transitions = 0
        while self.state is not FetchState.END:
            transitions += 1
            if transitions > self.max_transitions:
                raise RuntimeError(
                    f"Pagination for {label} exceeded {self.max_transitions} transitions"
                )
            next_state = self._handlers[self.state](snapshot)
            self.state = next_state
            self.history.append(next_state)

        LOGGER.info(
            "Finished %s: %d records over %d pages (stop=%s)",
            label,
            len(snapshot),
            snapshot.pages_fetched,
            self.stop_reason,
        )
        self._return_to_neutral_page()
        return snapshot

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------
    def _on_start(self, snapshot: RelationSnapshot) -> FetchState:
        self.cursor = ""
        self.has_next_page = True
        self.page_number = 1
        self.attempt.reset()
        return FetchState.REQUEST

    def _on_request(self, snapshot: RelationSnapshot) -> FetchState:
        try:
            self._page_result = self._fetch_page()
        except CollectionError as exc:
            self.last_error = exc
            self._page_result = None
            return FetchState.FAIL
        return FetchState.SUCCESS

    def _on_success(self, snapshot: RelationSnapshot) -> FetchState:
        result = self._page_result
        if result is None:
            raise RuntimeError("SUCCESS reached without a fetched page")
        snapshot.append_page(result.records)
        LOGGER.info("📊 Total %s collected: %d", self._relation.value, len(snapshot))

        self.has_next_page = result.has_next_page
        self.cursor = result.end_cursor or ""
        if self.has_next_page and not self.cursor:
            LOGGER.warning("End cursor missing but has_next_page is true. Stopping pagination.")
            self.has_next_page = False
            self.stop_reason = STOP_MISSING_CURSOR
            return FetchState.END

        if not self.has_next_page:
            self.stop_reason = STOP_LAST_PAGE
            return FetchState.END

        if self.page_number >= self._settings.max_pages:
            LOGGER.warning(
                "Reached page ceiling (%d) for %s. Stopping pagination.",
                self._settings.max_pages,
                self._relation.value,
            )
            self.stop_reason = STOP_PAGE_CEILING
            return FetchState.END

        return FetchState.ADVANCE

    def _on_advance(self, snapshot: RelationSnapshot) -> FetchState:
        self._pace_between_pages()
        self.page_number += 1
        self.attempt.reset()
        return FetchState.REQUEST

    def _on_fail(self, snapshot: RelationSnapshot) -> FetchState:
        self.attempt.retry_count += 1
        LOGGER.warning(
            "⚠️ Error in API request (%d/%d): %s",
            self.attempt.retry_count,
            self._settings.max_retries,
            self.last_error,
        )
        if self.attempt.retry_count >= self._settings.max_retries:
            return FetchState.ABORT
        return FetchState.RETRY

    def _on_retry(self, snapshot: RelationSnapshot) -> FetchState:
        self._backoff_before_retry()
        return FetchState.REQUEST

    def _on_abort(self, snapshot: RelationSnapshot) -> FetchState:
        self.abort_error = RetriesExhaustedError(
            self._relation.value, self.page_number, self.attempt.retry_count
        )
        LOGGER.error(
            "❌ Failed after %d retries for %s, moving on with %d records",
            self._settings.max_retries,
            self._relation.value,
            len(snapshot),
        )
        self.has_next_page = False
        self.stop_reason = STOP_RETRIES_EXHAUSTED
        return FetchState.END

    # ------------------------------------------------------------------
    # Page fetching
    # ------------------------------------------------------------------
    def _fetch_page(self) -> ExtractionSuccess:
        url = build_query_url(
            self._settings.base_url,
            self._relation,
            self._subject_id,
            self.cursor,
            self._settings.page_size,
        )
        LOGGER.info(
            "🔄 Making API request #%d for %s (attempt %d)...",
            self.page_number,
            self._relation.value,
            self.attempt.retry_count + 1,
        )
        self._executor.navigate(
            url,
            WaitCondition.DOCUMENT_READY,
            self._settings.navigation_timeout,
        )
        self._delay(self._settings.settle_delay, "settle-after-load")

        content = self._executor.evaluate(READ_BODY_SCRIPT)
        result = self._extractor.extract(content if isinstance(content, str) else None, self._relation.value)
        if isinstance(result, ExtractionFailure):
            raise ExtractionFailedError(result.reason)
        # Zero records is retried even when the page also reports no next page.
        if not result.records:
            raise EmptyPageError(f"{self._relation.value} page {self.page_number} returned no records")
        return result

    # ------------------------------------------------------------------
    # Delays
    # ------------------------------------------------------------------
    def _pace_between_pages(self) -> None:
        low, high = self._settings.page_pacing
        delay = self._rng.uniform(low, high)
        LOGGER.info("Waiting %d seconds before next request...", round(delay))
        time.sleep(delay)

    def _backoff_before_retry(self) -> None:
        backoff = self._settings.backoff_for(self.attempt.retry_count)
        self.attempt.backoff_delay = backoff
        delay = self._rng.uniform(backoff, backoff + self._settings.backoff_jitter)
        LOGGER.info("Waiting %d seconds before retry...", round(backoff))
        time.sleep(delay)

    def _delay(self, bounds: Tuple[float, float], label: str) -> None:
        delay = self._rng.uniform(*bounds)
        LOGGER.debug("Delay %.2fs (%s)", delay, label)
        time.sleep(delay)

    def _return_to_neutral_page(self) -> None:
        try:
            self._executor.navigate(
                f"{self._settings.base_url.rstrip('/')}/",
                WaitCondition.DOCUMENT_READY,
                self._settings.neutral_page_timeout,
            )
        except NavigationError as exc:
            LOGGER.warning("Could not return to the home page after %s: %s", self._relation.value, exc)
