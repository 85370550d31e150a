"""
Integration tests for the Prime Gaming claimer.

These tests drive a real browser against gaming.amazon.com and need valid
credentials in .env (PG_EMAIL, PG_PASSWORD and, with two-step verification, PG_OTPKEY).
Nothing is claimed: every test runs in dry-run mode.
Run with: pytest -m integration
"""

import logging

import pytest
from playwright.async_api import async_playwright

from prime_gaming_claimer.browser import launch_context
from prime_gaming_claimer.claims import PrimeGamingClaimer
from prime_gaming_claimer.config import Config
from prime_gaming_claimer.main import claim_all
from prime_gaming_claimer.session import establish_session
from prime_gaming_claimer.store import ClaimLedger, JsonDb

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def config(tmp_path) -> Config:
    config = Config.from_env()
    if not (config.email and config.password):
        pytest.skip("PG_EMAIL and PG_PASSWORD must be set in .env")
    config.headless = True
    config.dryrun = True
    # fresh profile and ledger, so every run signs in with the configured credentials
    config.data_dir = tmp_path
    return config


@pytest.mark.integration
@pytest.mark.slow
class TestSignIn:
    @pytest.mark.asyncio
    async def test_headless_sign_in_returns_account(self, config: Config) -> None:
        async with async_playwright() as p:
            context = await launch_context(p, config)
            try:
                page = context.pages[0] if context.pages else await context.new_page()
                session = await establish_session(page, config)
            finally:
                await context.close()

        assert session.signed_in
        assert session.user_name
        logger.info(f"Signed in as {session.user_name}")


@pytest.mark.integration
@pytest.mark.slow
class TestDryRun:
    @pytest.mark.asyncio
    async def test_lists_offers(self, config: Config) -> None:
        async with async_playwright() as p:
            context = await launch_context(p, config)
            try:
                page = context.pages[0] if context.pages else await context.new_page()
                await establish_session(page, config)
                claimer = PrimeGamingClaimer(page, {}, config)
                await claimer.open_game_offers()
                offers = await claimer.list_offers()
            finally:
                await context.close()

        logger.info(f"Found {len(offers)} offers")
        for offer in offers:
            assert offer.title

    @pytest.mark.asyncio
    async def test_full_flow_writes_no_records(self, config: Config) -> None:
        db = JsonDb(config.db_path)
        db.load()
        ledger = ClaimLedger(db)

        async with async_playwright() as p:
            context = await launch_context(p, config)
            try:
                page = context.pages[0] if context.pages else await context.new_page()
                session, claimed = await claim_all(page, ledger, config)
            finally:
                await context.close()

        assert claimed == []
        assert JsonDb(config.db_path).load() == {session.user_name: {}}
