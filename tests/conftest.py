"""Shared pytest configuration and fixtures for the test suite.

This module centralizes:
- Path setup (the package is importable without installation)
- Pytest markers for test categorization (unit, integration, selenium)
- Fixtures for fast pagination settings, sleep suppression and scripted executors
"""
from __future__ import annotations

import random
import sys
from pathlib import Path
from unittest.mock import patch

import pytest


# ==============================================================================
# Path Setup - Ensures ig_reciprocity/ is importable
# ==============================================================================

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ig_reciprocity.collector.pagination import PaginationSettings  # noqa: E402
from tests.helpers.scripted_executor import ScriptedExecutor  # noqa: E402


# ==============================================================================
# Pytest Configuration
# ==============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Fast tests with no I/O (mocked dependencies)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests hitting the file system or a scripted browser",
    )
    config.addinivalue_line(
        "markers",
        "selenium: Browser-based tests requiring Selenium (slowest)",
    )


# ==============================================================================
# Collection Fixtures
# ==============================================================================

@pytest.fixture
def fast_settings():
    """Pagination settings with the production ceilings and a local base URL."""
    return PaginationSettings(base_url="https://example.test")


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def sleep_calls():
    """Suppress every timed delay and record the requested durations.

    Example:
        def test_backoff(sleep_calls):
            ...  # run the controller
            assert all(delay >= 15 for delay in sleep_calls)
    """
    calls = []
    with patch("time.sleep", side_effect=lambda seconds: calls.append(seconds)):
        yield calls


@pytest.fixture
def scripted_executor():
    """Create an empty ScriptedExecutor; tests script pages with ``.script()``."""
    return ScriptedExecutor()
