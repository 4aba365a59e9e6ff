"""Browser capabilities the collection engine needs, plus a Selenium backend."""
from __future__ import annotations

import logging
import random
import signal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol

from selenium import webdriver
from selenium.common.exceptions import JavascriptException, TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from urllib3.exceptions import MaxRetryError, NewConnectionError

from ..config import SessionConfig
from ..errors import EvaluationError, NavigationError


LOGGER = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
)

STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
if (!window.Notification) { window.Notification = { permission: 'default' }; }
"""


class WaitCondition(str, Enum):
    """What "loaded" means after a navigation."""

    DOCUMENT_READY = "document_ready"
    BODY_PRESENT = "body_present"


class PageExecutor(Protocol):
    def navigate(
        self,
        url: str,
        wait_condition: WaitCondition = WaitCondition.DOCUMENT_READY,
        timeout: float = 45.0,
    ) -> None:
        """Load ``url``; raise NavigationError on timeout or network failure."""

    def evaluate(self, script: str, *args: Any) -> Any:
        """Run ``script`` in the current document; raise EvaluationError on failure."""


class SeleniumPageExecutor:
    """PageExecutor backed by a local Chrome session."""

    def __init__(self, config: SessionConfig) -> None:
        self._config = config
        self._driver: webdriver.Chrome | None = None

    # ------------------------------------------------------------------
    # Lifecycle helpers
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._driver:
            self._driver.quit()
        options = webdriver.ChromeOptions()
        if self._config.chrome_binary:
            options.binary_location = str(self._config.chrome_binary)
        if self._config.headless:
            options.add_argument("--headless=new")
        options.add_argument(f"--window-size={self._config.window_size}")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-infobars")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument(f"--user-agent={random.choice(USER_AGENTS)}")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])
        options.add_experimental_option("useAutomationExtension", False)

        # Ignore SIGINT while chromedriver spawns so Ctrl+C reaches Python only.
        old_sigint_handler = signal.signal(signal.SIGINT, signal.SIG_IGN)
        try:
            self._driver = webdriver.Chrome(options=options)
        finally:
            signal.signal(signal.SIGINT, old_sigint_handler)

        try:
            self._driver.execute_cdp_cmd(
                "Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_SCRIPT}
            )
        except WebDriverException as exc:
            LOGGER.warning("Failed to install navigator overrides: %s", exc)

    def quit(self) -> None:
        if self._driver:
            try:
                self._driver.quit()
            except WebDriverException as exc:
                LOGGER.warning("Browser did not shut down cleanly: %s", exc)
            self._driver = None

    def __enter__(self) -> "SeleniumPageExecutor":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.quit()

    @property
    def driver(self) -> webdriver.Chrome:
        if self._driver is None:
            raise RuntimeError("Browser session has not been started")
        return self._driver

    # ------------------------------------------------------------------
    # PageExecutor capabilities
    # ------------------------------------------------------------------
    def navigate(
        self,
        url: str,
        wait_condition: WaitCondition = WaitCondition.DOCUMENT_READY,
        timeout: float = 45.0,
    ) -> None:
        driver = self.driver
        LOGGER.debug("Navigating to %s (wait=%s, timeout=%.0fs)", url, wait_condition.value, timeout)
        try:
            driver.set_page_load_timeout(timeout)
            driver.get(url)
            wait = WebDriverWait(driver, timeout)
            if wait_condition is WaitCondition.BODY_PRESENT:
                wait.until(EC.presence_of_element_located((By.TAG_NAME, "body")))
            else:
                wait.until(lambda d: d.execute_script("return document.readyState") == "complete")
        except TimeoutException as exc:
            raise NavigationError(f"Timed out after {timeout:.0f}s loading {url}") from exc
        except (MaxRetryError, NewConnectionError) as exc:
            raise NavigationError(f"Connection to browser failed while loading {url}: {exc}") from exc
        except WebDriverException as exc:
            raise NavigationError(f"Browser error while loading {url}: {exc.msg or exc}") from exc

    def evaluate(self, script: str, *args: Any) -> Any:
        try:
            return self.driver.execute_script(script, *args)
        except (JavascriptException, WebDriverException) as exc:
            raise EvaluationError(f"Script evaluation failed: {getattr(exc, 'msg', None) or exc}") from exc

    # ------------------------------------------------------------------
    # Session plumbing used by the login collaborator
    # ------------------------------------------------------------------
    def add_cookies(self, cookies: Iterable[Dict[str, Any]]) -> int:
        added = 0
        for cookie in cookies:
            try:
                self.driver.add_cookie(cookie)
                added += 1
            except WebDriverException as exc:
                LOGGER.debug("Skipping cookie %s: %s", cookie.get("name"), exc)
        return added

    def refresh(self, timeout: float = 30.0) -> None:
        try:
            self.driver.set_page_load_timeout(timeout)
            self.driver.refresh()
        except WebDriverException as exc:
            raise NavigationError(f"Refresh failed: {exc}") from exc

    def click_button_with_text(self, *labels: str) -> Optional[str]:
        """Click the first button whose text contains one of ``labels``."""

        try:
            buttons = self.driver.find_elements(By.TAG_NAME, "button")
        except WebDriverException as exc:
            LOGGER.debug("Could not list buttons: %s", exc)
            return None
        for button in buttons:
            try:
                text = button.text or ""
            except WebDriverException:
                continue
            for label in labels:
                if label in text:
                    try:
                        button.click()
                    except WebDriverException as exc:
                        LOGGER.debug("Click on %r failed: %s", text, exc)
                        return None
                    return text
        return None
