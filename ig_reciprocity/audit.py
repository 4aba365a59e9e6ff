"""Top-level run: authenticate, collect both relations, reconcile, persist."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .collector.aggregator import CollectionAggregator
from .collector.models import Relation
from .collector.page_executor import PageExecutor, SeleniumPageExecutor
from .collector.pagination import PaginationSettings
from .config import SessionConfig
from .errors import SubjectIdentifierMissingError
from .output import WrittenArtifacts, write_report
from .reconcile import ReconciliationReport
from .session import discover_user_id, login_with_cookies


LOGGER = logging.getLogger(__name__)


@dataclass
class AuditOutcome:
    aggregator: CollectionAggregator
    report: Optional[ReconciliationReport] = None
    artifacts: Optional[WrittenArtifacts] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def run_audit(
    executor: PageExecutor,
    subject_id: Optional[str],
    aggregator: CollectionAggregator,
) -> ReconciliationReport:
    """Collect followers then following for ``subject_id`` and diff them."""

    if not subject_id:
        raise SubjectIdentifierMissingError(
            "Failed to extract user ID - this is required to proceed"
        )

    LOGGER.info("📥 Collecting followers and following data...")
    followers, following = aggregator.collect_all(executor, subject_id)
    report = ReconciliationReport.build(followers, following)
    log_summary(report)
    log_collection_status(aggregator)
    return report


def partial_report(aggregator: CollectionAggregator) -> Optional[ReconciliationReport]:
    """Build a report from whatever snapshots exist, or None if nothing was collected."""

    followers = aggregator.snapshot(Relation.FOLLOWERS)
    following = aggregator.snapshot(Relation.FOLLOWING)
    if followers is None and following is None:
        return None
    return ReconciliationReport.build(
        followers.records if followers is not None else [],
        following.records if following is not None else [],
    )


def log_summary(report: ReconciliationReport) -> None:
    LOGGER.info("📊 Data summary:")
    LOGGER.info("- Followers: %d", len(report.followers))
    LOGGER.info("- Following: %d", len(report.following))
    if report.non_followers:
        LOGGER.info("🚨 Found %d people who don't follow you back:", len(report.non_followers))
        for line in report.lines():
            LOGGER.info("  • %s", line)
    else:
        LOGGER.info("✅ Everyone you follow also follows you back!")


def log_collection_status(aggregator: CollectionAggregator) -> None:
    """Warn about relations that stopped before their last page."""

    for relation in (Relation.FOLLOWERS, Relation.FOLLOWING):
        snapshot = aggregator.snapshot(relation)
        if snapshot is None or snapshot.complete:
            continue
        LOGGER.warning(
            "⚠️ %s list is incomplete (%d records over %d pages, stop=%s); the result may be off",
            relation.value.capitalize(),
            len(snapshot),
            snapshot.pages_fetched,
            snapshot.stop_reason,
        )


def execute(
    session_config: SessionConfig,
    settings: PaginationSettings,
    output_dir: Path,
    *,
    subject_id: Optional[str] = None,
    username: Optional[str] = None,
    executor_factory: Callable[[SessionConfig], SeleniumPageExecutor] = SeleniumPageExecutor,
) -> AuditOutcome:
    """Run the whole audit inside one browser session.

    The browser is shut down on every exit path. If a fatal error interrupts
    the run, the snapshots collected so far are still written out.
    """

    outcome = AuditOutcome(aggregator=CollectionAggregator(settings))
    executor = executor_factory(session_config)
    try:
        executor.start()
        login_with_cookies(executor, session_config)
        if not subject_id:
            subject_id = discover_user_id(executor, session_config.base_url, username)
        outcome.report = run_audit(executor, subject_id, outcome.aggregator)
    except Exception as exc:
        LOGGER.error("❌ Error: %s", exc)
        LOGGER.debug("Fatal error details", exc_info=True)
        outcome.error = exc
        outcome.report = partial_report(outcome.aggregator)
        log_collection_status(outcome.aggregator)
    finally:
        executor.quit()

    if outcome.report is not None:
        try:
            outcome.artifacts = write_report(outcome.report, output_dir)
        except OSError as exc:
            LOGGER.error("❌ Error: could not write results to %s: %s", output_dir, exc)
            LOGGER.debug("Write failure details", exc_info=True)
            if outcome.error is None:
                outcome.error = exc
    LOGGER.info("✅ Task Completed!")
    return outcome
