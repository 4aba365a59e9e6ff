"""Write the non-follower list and the full JSON dump to disk."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .reconcile import ReconciliationReport


LOGGER = logging.getLogger(__name__)

NON_FOLLOWERS_FILENAME = "non_followers.txt"
DETAILED_DATA_FILENAME = "detailed_data.json"


@dataclass(frozen=True)
class WrittenArtifacts:
    detailed_data: Path
    non_followers: Optional[Path]


def write_non_followers(report: ReconciliationReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(report.lines()), encoding="utf-8")
    LOGGER.info("📄 Saved %d non-followers to %s", len(report.non_followers), path)
    return path


def write_detailed_data(report: ReconciliationReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    LOGGER.info("📄 Saved detailed data to %s", path)
    return path


def write_report(report: ReconciliationReport, output_dir: Path) -> WrittenArtifacts:
    """Persist both artifacts; the text list is skipped when it would be empty."""

    detailed = write_detailed_data(report, output_dir / DETAILED_DATA_FILENAME)
    non_followers = None
    if report.non_followers:
        non_followers = write_non_followers(report, output_dir / NON_FOLLOWERS_FILENAME)
    return WrittenArtifacts(detailed_data=detailed, non_followers=non_followers)
