"""Session bootstrap: cookie login and discovery of the account identifier."""
from __future__ import annotations

import logging
import pickle
import random
import re
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .collector.page_executor import SeleniumPageExecutor, WaitCondition
from .config import SessionConfig
from .errors import EvaluationError, SessionError


LOGGER = logging.getLogger(__name__)

LOGIN_FORM_SCRIPT = "return !!document.querySelector('input[name=\"username\"]');"

PROFILE_LINK_SCRIPT = """
const selectors = [
  'a[href^="/"]:not([href="/"])',
  'nav a[href^="/"]',
  'header a[href^="/"]',
  'a[role="link"][href^="/"]',
];
const hrefs = [];
for (const selector of selectors) {
  for (const el of document.querySelectorAll(selector)) {
    const href = el.getAttribute('href');
    if (href) { hrefs.push(href); }
  }
}
return hrefs;
"""

SHARED_DATA_ID_SCRIPT = """
try {
  return window._sharedData.entry_data.ProfilePage[0].graphql.user.id || null;
} catch (e) {
  return null;
}
"""

SCRIPT_TEXTS_SCRIPT = (
    "return Array.from(document.querySelectorAll('script'))"
    ".map(s => s.textContent || s.innerText || '');"
)

CONSENT_LABELS = ("Accept", "Allow")
DISMISS_LABELS = ("Not Now",)

PROFILE_HREF_PATTERN = re.compile(r"^/[\w._]+/?$")
EXCLUDED_HREF_PARTS = ("/direct/", "/explore/")

# Checked in this order inside each script body.
USER_ID_PATTERNS = (
    re.compile(r'"user_id":"(\d+)"'),
    re.compile(r'"profilePage_(\d+)"'),
    re.compile(r'"id":"(\d+)"'),
)


def _pause(low: float, high: float, label: str) -> None:
    delay = random.uniform(low, high)
    LOGGER.debug("Delay %.2fs (%s)", delay, label)
    time.sleep(delay)


def load_cookies(path: Path) -> List[Dict[str, Any]]:
    try:
        with path.open("rb") as fh:
            cookies = pickle.load(fh)
    except FileNotFoundError as exc:
        raise SessionError(
            f"Cookie file missing at {path}. Run scripts/setup_cookies.py first."
        ) from exc
    if not cookies:
        raise SessionError(f"Cookie file {path} does not contain any cookies.")
    return list(cookies)


def dismiss_prompt(executor: SeleniumPageExecutor, labels: Sequence[str], label: str) -> bool:
    clicked = executor.click_button_with_text(*labels)
    if clicked:
        LOGGER.debug("Dismissed %s prompt (%s)", label, clicked.strip())
        _pause(0.5, 1.0, f"after-{label}")
        return True
    LOGGER.debug("No %s prompt detected", label)
    return False


def is_logged_in(executor: SeleniumPageExecutor) -> bool:
    try:
        return not executor.evaluate(LOGIN_FORM_SCRIPT)
    except EvaluationError as exc:
        LOGGER.warning("Could not inspect login state: %s", exc)
        return False


def login_with_cookies(executor: SeleniumPageExecutor, config: SessionConfig) -> None:
    """Authenticate the browser with previously captured cookies."""

    cookies = load_cookies(config.cookies_path)
    LOGGER.info("🌐 Navigating to %s...", config.base_url)
    executor.navigate(f"{config.base_url}/", WaitCondition.DOCUMENT_READY, 60.0)
    dismiss_prompt(executor, CONSENT_LABELS, "cookie-consent")

    added = executor.add_cookies(cookies)
    LOGGER.debug("Loaded %s/%d cookies from %s", added, len(cookies), config.cookies_path)
    executor.refresh()
    _pause(2.0, 3.0, "post-refresh")

    for _ in range(2):
        dismiss_prompt(executor, DISMISS_LABELS, "not-now")

    if not is_logged_in(executor):
        raise SessionError(
            "Login failed: the login form is still visible. Refresh the cookies with scripts/setup_cookies.py."
        )
    LOGGER.info("✅ Session authenticated from cookies")


def pick_profile_href(hrefs: Iterable[str]) -> Optional[str]:
    for href in hrefs:
        if not href or href == "/":
            continue
        if any(part in href for part in EXCLUDED_HREF_PARTS):
            continue
        if PROFILE_HREF_PATTERN.match(href):
            return href
    return None


def find_user_id_in_scripts(script_texts: Iterable[str]) -> Optional[str]:
    for text in script_texts:
        if not text:
            continue
        for pattern in USER_ID_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
    return None


def discover_user_id(
    executor: SeleniumPageExecutor,
    base_url: str,
    username: Optional[str] = None,
    *,
    timeout: float = 30.0,
) -> Optional[str]:
    """Open the account's profile page and read its numeric identifier."""

    LOGGER.info("🔍 Finding your profile...")
    profile_path = None
    try:
        profile_path = pick_profile_href(executor.evaluate(PROFILE_LINK_SCRIPT) or [])
    except EvaluationError as exc:
        LOGGER.warning("Profile link lookup failed: %s", exc)

    if profile_path:
        LOGGER.debug("Found profile URL: %s", profile_path)
    elif username:
        LOGGER.debug("Falling back to username: %s", username)
        profile_path = f"/{username}/"
    else:
        LOGGER.error("No profile link on the page and no username to fall back to")
        return None

    executor.navigate(f"{base_url}{profile_path}", WaitCondition.DOCUMENT_READY, timeout)
    _pause(2.0, 3.0, "profile-load")

    try:
        shared_id = executor.evaluate(SHARED_DATA_ID_SCRIPT)
        if shared_id:
            LOGGER.info("✅ Found user ID: %s", shared_id)
            return str(shared_id)
        user_id = find_user_id_in_scripts(executor.evaluate(SCRIPT_TEXTS_SCRIPT) or [])
    except EvaluationError as exc:
        LOGGER.warning("User ID extraction failed: %s", exc)
        return None

    if user_id:
        LOGGER.info("✅ Found user ID: %s", user_id)
    return user_id
