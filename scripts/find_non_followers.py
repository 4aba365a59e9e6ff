"""CLI entrypoint: list the accounts you follow that do not follow you back."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ig_reciprocity.audit import execute
from ig_reciprocity.config import get_collection_settings, get_output_dir, get_session_config
from ig_reciprocity.logging_utils import setup_audit_logging

LOGGER = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find Instagram accounts that do not follow you back")
    parser.add_argument(
        "--cookies",
        type=Path,
        default=None,
        help="Path to the Chrome cookies pickle (default: IG_COOKIES_PATH or secrets/instagram_cookies.pkl).",
    )
    parser.add_argument(
        "--username",
        type=str,
        default=None,
        help="Your username; used to open your profile when the page has no profile link.",
    )
    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="Numeric account identifier. Skips identifier discovery when given.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for non_followers.txt and detailed_data.json (default: IG_OUTPUT_DIR or cwd).",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run Chrome in headless mode (default is visible window).",
    )
    parser.add_argument(
        "--chrome-binary",
        type=Path,
        default=None,
        help="Path to Chrome/Chromium binary to launch (defaults to Selenium Manager discovery).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"],
        help="Console logging verbosity (default INFO). File always logs DEBUG.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all console output except the log file.",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    console_log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    setup_audit_logging(console_level=console_log_level, quiet=args.quiet)
    LOGGER.info("📌 Instagram Unfollowers Audit")

    session_config = get_session_config(
        headless=args.headless,
        chrome_binary=args.chrome_binary,
        cookies_path=args.cookies,
    )
    settings = get_collection_settings()
    output_dir = args.output_dir.expanduser().resolve() if args.output_dir else get_output_dir()

    outcome = execute(
        session_config,
        settings,
        output_dir,
        subject_id=args.user_id,
        username=args.username,
    )
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
