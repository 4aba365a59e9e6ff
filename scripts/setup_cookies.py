"""Interactive helper to capture Instagram authentication cookies."""
from __future__ import annotations

import argparse
import pickle
from pathlib import Path
from typing import Optional

from ig_reciprocity.collector.page_executor import SeleniumPageExecutor, WaitCondition
from ig_reciprocity.config import DEFAULT_COOKIES_PATH, get_session_config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture Instagram cookies for Selenium sessions")
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_COOKIES_PATH,
        help=f"Where to write the cookies pickle (default: {DEFAULT_COOKIES_PATH})",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run Chrome headless (not recommended because you must log in manually)",
    )
    return parser.parse_args()


def capture_cookies(output_path: Path, *, headless: bool) -> Optional[Path]:
    output_path = output_path.expanduser().resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config = get_session_config(headless=headless, cookies_path=output_path)
    with SeleniumPageExecutor(config) as executor:
        login_url = f"{config.base_url}/accounts/login/"
        print(f"Opening {login_url} ...")
        executor.navigate(login_url, WaitCondition.DOCUMENT_READY, 60.0)
        print("\nPlease complete login in the browser window.")
        input("Press Enter once you are logged in and the feed is visible...")

        cookies = executor.driver.get_cookies() or []
        if not cookies:
            print("\n✗ No cookies were captured. Is the session still active?")
            return None

        with output_path.open("wb") as fh:
            pickle.dump(cookies, fh)
        print(f"\n✓ Saved {len(cookies)} cookies to {output_path}")
        return output_path


def main() -> None:
    args = parse_args()
    capture_cookies(args.output, headless=args.headless)


if __name__ == "__main__":
    main()
