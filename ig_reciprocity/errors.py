"""Exception taxonomy for relation collection and reconciliation runs."""
from __future__ import annotations


class CollectionError(Exception):
    """Base class for every collection failure."""


class NavigationError(CollectionError):
    """Page load failed (timeout, dropped connection, browser error)."""


class EvaluationError(CollectionError):
    """Script evaluation inside the loaded document failed."""


class ExtractionFailedError(CollectionError):
    """The extractor rejected the document content."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"extraction failed: {reason}")
        self.reason = reason


class EmptyPageError(CollectionError):
    """Extraction succeeded but produced no user records."""


class RetriesExhaustedError(CollectionError):
    """A single page kept failing until the retry ceiling was reached."""

    def __init__(self, relation: str, page: int, attempts: int) -> None:
        super().__init__(
            f"{relation} page {page} failed after {attempts} attempts"
        )
        self.relation = relation
        self.page = page
        self.attempts = attempts


class SubjectIdentifierMissingError(CollectionError):
    """No account identifier was supplied, so there is nothing to collect."""


class SessionError(CollectionError):
    """The browser session could not be authenticated."""
