"""Configuration helpers for the follower reconciliation tool."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"

# Load environment variables early so downstream modules can rely on them.
load_dotenv(ENV_PATH, override=False)

BASE_URL_ENV = "IG_BASE_URL"
COOKIES_PATH_ENV = "IG_COOKIES_PATH"
OUTPUT_DIR_ENV = "IG_OUTPUT_DIR"
NAV_TIMEOUT_ENV = "IG_NAV_TIMEOUT_SECONDS"
MAX_PAGES_ENV = "IG_MAX_PAGES"
MAX_RETRIES_ENV = "IG_MAX_RETRIES"
PAGE_SIZE_ENV = "IG_PAGE_SIZE"

DEFAULT_BASE_URL = "https://www.instagram.com"
DEFAULT_COOKIES_PATH = Path("secrets/instagram_cookies.pkl")
DEFAULT_NAV_TIMEOUT_SECONDS = 45
DEFAULT_MAX_PAGES = 100
DEFAULT_MAX_RETRIES = 5
DEFAULT_PAGE_SIZE = 24


@dataclass(frozen=True)
class SessionConfig:
    """Browser session settings consumed by the Selenium executor."""

    base_url: str
    cookies_path: Path
    headless: bool = False
    window_size: str = "1280,800"
    chrome_binary: Optional[Path] = None


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_int_env(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer; received '{raw}'.") from exc


def get_base_url() -> str:
    return _get_env(BASE_URL_ENV, DEFAULT_BASE_URL).rstrip("/")


def get_session_config(
    *,
    headless: bool = False,
    chrome_binary: Optional[Path] = None,
    cookies_path: Optional[Path] = None,
) -> SessionConfig:
    """Resolve browser session configuration from environment and overrides."""

    if cookies_path is None:
        cookies_path = Path(_get_env(COOKIES_PATH_ENV, str(DEFAULT_COOKIES_PATH)))
    return SessionConfig(
        base_url=get_base_url(),
        cookies_path=cookies_path.expanduser(),
        headless=headless,
        chrome_binary=chrome_binary,
    )


def get_collection_settings() -> "PaginationSettings":
    """Return pagination limits, honoring environment overrides."""

    from .collector.pagination import PaginationSettings

    settings = PaginationSettings(
        base_url=get_base_url(),
        page_size=_get_int_env(PAGE_SIZE_ENV, DEFAULT_PAGE_SIZE),
        max_pages=_get_int_env(MAX_PAGES_ENV, DEFAULT_MAX_PAGES),
        max_retries=_get_int_env(MAX_RETRIES_ENV, DEFAULT_MAX_RETRIES),
        navigation_timeout=float(_get_int_env(NAV_TIMEOUT_ENV, DEFAULT_NAV_TIMEOUT_SECONDS)),
    )
    for key, value in (
        (PAGE_SIZE_ENV, settings.page_size),
        (MAX_PAGES_ENV, settings.max_pages),
        (MAX_RETRIES_ENV, settings.max_retries),
    ):
        if value < 1:
            raise RuntimeError(f"{key} must be positive; received {value}.")
    return settings


def get_output_dir() -> Path:
    """Directory where the non-follower list and JSON dump are written."""

    raw_path = _get_env(OUTPUT_DIR_ENV, ".")
    return Path(raw_path).expanduser().resolve()
