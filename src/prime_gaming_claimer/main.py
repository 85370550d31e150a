import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from playwright.async_api import Page, async_playwright

from .browser import Watchers, launch_context
from .claims import PrimeGamingClaimer
from .config import Config
from .models import ClaimRecord, SessionInfo
from .report import log_report, send_claim_report
from .session import establish_session
from .store import ClaimLedger, JsonDb
from .util import timestamp

# Configure root logger
logger = logging.getLogger(__name__)

# Log directory - can be overridden via PG_LOG_DIR env var
LOG_DIR = Path(os.environ.get("PG_LOG_DIR", "logs"))


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with console and file handlers."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_level = logging.DEBUG if verbose else logging.INFO

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    file_handler = logging.FileHandler(LOG_DIR / "prime_gaming_claimer.log")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Report logger with its own file
    report_logger = logging.getLogger("prime_gaming_claimer.reports")
    report_handler = logging.FileHandler(LOG_DIR / "reports.log")
    report_handler.setLevel(logging.INFO)
    report_handler.setFormatter(logging.Formatter("%(asctime)s\n%(message)s\n"))
    report_logger.addHandler(report_handler)


async def claim_all(
    page: Page, ledger: ClaimLedger, config: Config, background: Watchers | None = None
) -> tuple[SessionInfo, list[ClaimRecord]]:
    """
    Sign in, then claim direct and external offers for the signed-in account.

    The ledger is written exactly once, also when signing in or claiming fails,
    so whatever was claimed before the failure is kept.
    """
    try:
        session = await establish_session(page, config, background)
        bucket = ledger.load(session.user_name)
        claimer = PrimeGamingClaimer(page, bucket, config)
        await claimer.open_game_offers()
        direct = await claimer.claim_direct_offers()
        external = await claimer.claim_external_offers()
        logger.info(f"Claimed {direct} games on Prime Gaming, processed {external} external offers")
        await claimer.capture_overview()
        return session, claimer.claimed
    finally:
        ledger.flush()


async def list_offers(page: Page, config: Config, background: Watchers | None = None) -> None:
    """Sign in and log the claimable offers without claiming anything."""
    await establish_session(page, config, background)
    claimer = PrimeGamingClaimer(page, {}, config)
    await claimer.open_game_offers()
    offers = await claimer.list_offers()
    logger.info(f"Found {len(offers)} claimable offers")
    for offer in offers:
        logger.info(offer)


async def run(config: Config, list_only: bool = False) -> int:
    """Run one claim pass in a fresh browser. Returns the process exit code."""
    logger.info(f"{timestamp()} started checking prime-gaming")
    try:
        db = JsonDb(config.db_path)
        db.load()
        ledger = ClaimLedger(db)

        async with async_playwright() as p:
            context = await launch_context(p, config)
            try:
                # lives for the whole run, cancelled before the browser goes away
                async with Watchers() as background:
                    page = context.pages[0] if context.pages else await context.new_page()
                    if list_only:
                        await list_offers(page, config, background)
                        return 0
                    session, claimed = await claim_all(page, ledger, config, background)
            finally:
                await context.close()
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        return 1

    log_report(claimed, session.user_name)

    sender = os.environ.get("PG_EMAIL_SENDER")
    recipient = os.environ.get("PG_EMAIL_RECIPIENT")
    if not claimed:
        logger.info("Nothing new claimed, no email report")
    elif sender and recipient:
        send_claim_report(claimed, sender=sender, recipient=recipient, user_name=session.user_name)
    else:
        logger.info(
            "Email not sent: PG_EMAIL_SENDER and PG_EMAIL_RECIPIENT "
            f"environment variables not set. Report logged to {LOG_DIR / 'reports.log'}"
        )
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Claim free games on Prime Gaming")
    parser.add_argument(
        "--headless",
        dest="headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run browser in headless mode (default: headless unless SHOW=1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Don't claim anything, just log the offers that would be claimed",
    )
    parser.add_argument(
        "--list",
        dest="list_only",
        action="store_true",
        help="Only list claimable offers and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Disable the operation timeout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Settings from the environment, with CLI flags taking precedence."""
    config = Config.from_env()
    if args.headless is not None:
        config.headless = args.headless
    if args.dry_run:
        config.dryrun = True
    if args.debug:
        config.debug = True
    return config


def main() -> int:
    args = parse_args()
    setup_logging(verbose=args.verbose)
    config = build_config(args)
    return asyncio.run(run(config, list_only=args.list_only))


if __name__ == "__main__":
    sys.exit(main())
