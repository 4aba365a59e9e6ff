"""Best-effort recovery of user records from raw query responses.

The query endpoint regularly answers with truncated JSON, rate-limit
interstitials or a "Please wait" placeholder, so nothing here requires the
body to parse. Each field is located by its own pattern scan.
"""
from __future__ import annotations

import json
import logging
import re
from typing import List, Optional

from .models import ExtractionFailure, ExtractionResult, ExtractionSuccess, UserRecord


LOGGER = logging.getLogger(__name__)

EMPTY_OR_LOADING = "empty_or_loading"

MIN_CONTENT_LENGTH = 10
LOADING_MARKERS = ("Please wait",)

_JSON_STRING = r'((?:[^"\\]|\\.)*)'
USER_PATTERN = re.compile(
    r'"username"\s*:\s*"' + _JSON_STRING + r'"\s*,\s*"full_name"\s*:\s*"' + _JSON_STRING + r'"'
)
HAS_NEXT_PAGE_PATTERN = re.compile(r'"?has_next_page"?\s*:\s*true')
END_CURSOR_PATTERN = re.compile(r'"end_cursor"\s*:\s*"' + _JSON_STRING + r'"')


def _unescape(raw: str) -> str:
    """Decode JSON string escapes, keeping the raw text when they are broken."""

    if "\\" not in raw:
        return raw
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


class ResponseExtractor:
    """Turns raw document text into records plus pagination metadata."""

    def __init__(
        self,
        *,
        min_length: int = MIN_CONTENT_LENGTH,
        loading_markers: tuple = LOADING_MARKERS,
    ) -> None:
        self._min_length = min_length
        self._loading_markers = loading_markers

    def is_unusable(self, content: Optional[str]) -> bool:
        if not content or len(content) < self._min_length:
            return True
        return any(marker in content for marker in self._loading_markers)

    def extract(self, content: Optional[str], relation_label: str = "") -> ExtractionResult:
        label = relation_label or "records"
        if self.is_unusable(content):
            LOGGER.warning("Failed to extract %s data: empty or loading response", label)
            return ExtractionFailure(reason=EMPTY_OR_LOADING)

        records = self.scan_records(content)
        has_next_page = self.scan_has_next_page(content)
        end_cursor = self.scan_end_cursor(content)
        LOGGER.debug(
            "Extracted %d %s (has_next_page=%s, end_cursor=%s)",
            len(records),
            label,
            has_next_page,
            end_cursor,
        )
        return ExtractionSuccess(records=records, has_next_page=has_next_page, end_cursor=end_cursor)

    @staticmethod
    def scan_records(content: str) -> List[UserRecord]:
        records: List[UserRecord] = []
        for match in USER_PATTERN.finditer(content):
            username = _unescape(match.group(1))
            if not username:
                continue
            # Identifiers are not reliable in partial bodies, so they stay unset.
            records.append(UserRecord(username=username, full_name=_unescape(match.group(2)), id=None))
        return records

    @staticmethod
    def scan_has_next_page(content: str) -> bool:
        return HAS_NEXT_PAGE_PATTERN.search(content) is not None

    @staticmethod
    def scan_end_cursor(content: str) -> Optional[str]:
        match = END_CURSOR_PATTERN.search(content)
        if not match or not match.group(1):
            return None
        return _unescape(match.group(1))
