"""Unit tests for logging utilities.

Tests the console filter and the logging setup.
"""
from __future__ import annotations

import logging
import logging.handlers

import pytest

from ig_reciprocity.audit import log_collection_status, log_summary
from ig_reciprocity.collector.aggregator import CollectionAggregator
from ig_reciprocity.collector.models import Relation, RelationSnapshot, UserRecord
from ig_reciprocity.logging_utils import ColoredFormatter, ConsoleFilter, setup_audit_logging
from ig_reciprocity.reconcile import ReconciliationReport


def make_record(name: str, level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


# ==============================================================================
# ConsoleFilter Tests
# ==============================================================================

@pytest.mark.unit
@pytest.mark.parametrize("level", [logging.WARNING, logging.ERROR, logging.CRITICAL])
def test_console_filter_allows_warnings_and_above(level):
    assert ConsoleFilter().filter(make_record("anything", level, "msg")) is True


@pytest.mark.unit
def test_console_filter_allows_pagination_progress():
    record = make_record(
        "ig_reciprocity.collector.pagination",
        logging.INFO,
        "🔄 Making API request #3 for followers (attempt 1)...",
    )
    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_blocks_other_pagination_info():
    record = make_record("ig_reciprocity.collector.pagination", logging.INFO, "Waiting 4 seconds before next request...")
    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_allows_audit_summary():
    record = make_record("ig_reciprocity.audit", logging.INFO, "- Followers: 12")
    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_filter_blocks_debug():
    record = make_record("ig_reciprocity.audit", logging.DEBUG, "- Followers: 12")
    assert ConsoleFilter().filter(record) is False


@pytest.mark.unit
def test_console_filter_allows_script_runner():
    record = make_record("scripts.find_non_followers", logging.INFO, "anything")
    assert ConsoleFilter().filter(record) is True


@pytest.mark.unit
def test_console_shows_each_non_follower_entry():
    handler = RecordingHandler()
    handler.addFilter(ConsoleFilter())
    audit_logger = logging.getLogger("ig_reciprocity.audit")
    audit_logger.addHandler(handler)
    saved_level = audit_logger.level
    audit_logger.setLevel(logging.INFO)
    try:
        report = ReconciliationReport.build([], [UserRecord("alice", "Alice"), UserRecord("bob")])
        log_summary(report)
    finally:
        audit_logger.removeHandler(handler)
        audit_logger.setLevel(saved_level)

    assert "  • alice (Alice)" in handler.messages
    assert "  • bob (No full name)" in handler.messages
    assert handler.messages.index("  • alice (Alice)") > handler.messages.index(
        "🚨 Found 2 people who don't follow you back:"
    )


@pytest.mark.unit
def test_console_warns_about_incomplete_relation():
    aggregator = CollectionAggregator()
    snapshot = RelationSnapshot(relation=Relation.FOLLOWERS, records=[UserRecord("b")])
    snapshot.freeze(complete=False, stop_reason="retries_exhausted")
    aggregator._snapshots[Relation.FOLLOWERS] = snapshot

    handler = RecordingHandler()
    handler.addFilter(ConsoleFilter())
    audit_logger = logging.getLogger("ig_reciprocity.audit")
    audit_logger.addHandler(handler)
    try:
        log_collection_status(aggregator)
    finally:
        audit_logger.removeHandler(handler)

    assert len(handler.messages) == 1
    assert "Followers list is incomplete" in handler.messages[0]
    assert "stop=retries_exhausted" in handler.messages[0]


@pytest.mark.unit
def test_colored_formatter_wraps_message():
    formatter = ColoredFormatter("%(message)s")
    output = formatter.format(make_record("x", logging.ERROR, "boom"))
    assert output.startswith("\033[31m")
    assert output.endswith("\033[0m")
    assert "boom" in output


# ==============================================================================
# setup_audit_logging Tests
# ==============================================================================

@pytest.mark.unit
def test_setup_audit_logging_installs_handlers(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    try:
        setup_audit_logging(console_level=logging.WARNING, log_dir=tmp_path / "logs")

        file_handlers = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        console_handlers = [h for h in root.handlers if type(h) is logging.StreamHandler]
        assert len(file_handlers) == 1
        assert len(console_handlers) == 1
        assert console_handlers[0].level == logging.WARNING
        assert (tmp_path / "logs" / "audit.log").exists()
        assert logging.getLogger("selenium").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved:
            root.addHandler(handler)
        root.setLevel(saved_level)


@pytest.mark.unit
def test_setup_audit_logging_quiet_has_no_console(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:]
    saved_level = root.level
    try:
        setup_audit_logging(quiet=True, log_dir=tmp_path)
        assert all(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in saved:
            root.addHandler(handler)
        root.setLevel(saved_level)
