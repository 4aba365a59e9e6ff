"""Resilient relation collection (paginated fetch + tolerant extraction)."""

from __future__ import annotations

from .aggregator import CollectionAggregator
from .extractor import ResponseExtractor
from .models import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    Relation,
    RelationSnapshot,
    UserRecord,
)
from .page_executor import PageExecutor, SeleniumPageExecutor, WaitCondition
from .pagination import PaginationController, PaginationSettings

__all__ = [
    "CollectionAggregator",
    "ExtractionFailure",
    "ExtractionResult",
    "ExtractionSuccess",
    "PageExecutor",
    "PaginationController",
    "PaginationSettings",
    "Relation",
    "RelationSnapshot",
    "ResponseExtractor",
    "SeleniumPageExecutor",
    "UserRecord",
    "WaitCondition",
]
