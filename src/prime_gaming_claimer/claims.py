import logging
import re
from typing import Any

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from .browser import capture_evidence, race
from .config import Config
from .errors import ClaimUIFailure
from .models import ClaimOutcome, ClaimRecord, Offer, OfferKind
from .session import URL_CLAIM
from .store import ClaimLedger
from .util import screenshot_path, timestamp

logger = logging.getLogger(__name__)

GAMES_TAB = 'button[data-type="Game"]'
GAMES_LIST = 'div[data-a-target="offer-list-FGWP_FULL"]'
COLLECTED = f'{GAMES_LIST} p:has-text("Collected")'
DIRECT_OFFER = f'{GAMES_LIST} [data-a-target="item-card"]:has-text("Claim game")'
EXTERNAL_OFFER = f'{GAMES_LIST} [data-a-target="item-card"]:has(p:text-is("Claim"))'
OFFER_TITLE = ".item-card-details__body__primary"
CLAIM_GAME_BUTTON = 'button:has-text("Claim game")'
CLAIM_LINK = "text=Claim"

CLAIM_NOW_BUTTON = 'button:has-text("Claim now")'
COMPLETE_CLAIM_BUTTON = 'button:has-text("Complete Claim")'
LINK_ACCOUNT = 'div:has-text("Link game account")'
STORE_SUBTITLE = '[data-a-target="hero-header-subtitle"]'
CODE_INPUT = 'input[type="text"]'
LEGACY_GAMES_LINK = 'li:has-text("Click here") a'

INTERNAL_STORE = "internal"

# stores that hand out a code to redeem on their site; others are claimed by account linking
REDEEM_URLS = {
    "gog.com": "https://www.gog.com/redeem",
    "legacy games": "https://www.legacygames.com/primedeal",
    "microsoft games": "https://redeem.microsoft.com",
}
# changes per promotion, read from the offer page instead
DYNAMIC_REDEEM_STORE = "legacy games"


def parse_store_name(subtitle: str) -> str:
    """
    Store name from an offer page subtitle.

    >>> parse_store_name("Full game for PC and MAC on: gog.com")
    'gog.com'
    >>> parse_store_name("3 Full PC Games on Legacy Games")
    'legacy games'
    """
    return re.sub(r".* on:? ", "", subtitle.strip().lower())


class PrimeGamingClaimer:
    """Claims the free games offered on the Prime Gaming page for the signed-in account."""

    def __init__(self, page: Page, bucket: dict[str, Any], config: Config):
        """
        Args:
            page: Signed-in page, see `session.establish_session`
            bucket: Ledger bucket of the signed-in account, see `ClaimLedger.load`
            config: Runtime settings (dry-run, screenshot location)
        """
        self.page = page
        self.bucket = bucket
        self.config = config
        # records added during this run, for the report
        self.claimed: list[ClaimRecord] = []

    async def open_game_offers(self) -> None:
        """Switch to the games category and wait for its offer list."""
        await self.page.click(GAMES_TAB)
        await self.page.wait_for_selector(GAMES_LIST)

    async def _return_to_offers(self) -> None:
        await self.page.goto(URL_CLAIM, wait_until="domcontentloaded")
        await self.open_game_offers()

    async def _read_title(self, card: ElementHandle) -> str:
        title_element = await card.query_selector(OFFER_TITLE)
        if title_element is None:
            raise ClaimUIFailure("Offer card without a title")
        return (await title_element.inner_text()).strip()

    def _record(self, record: ClaimRecord) -> None:
        if ClaimLedger.insert_if_absent(self.bucket, record.title, record):
            self.claimed.append(record)

    async def list_offers(self) -> list[Offer]:
        """Currently claimable games of both kinds, without claiming anything."""
        offers = []
        for selector, kind in ((DIRECT_OFFER, OfferKind.DIRECT), (EXTERNAL_OFFER, OfferKind.EXTERNAL)):
            for card in await self.page.query_selector_all(selector):
                offers.append(Offer(title=await self._read_title(card), kind=kind))
        return offers

    async def claim_direct_offers(self) -> int:
        """
        Claim every game that can be claimed right here on Prime Gaming.

        Claiming happens in place and does not reorder the cards, so the list is
        queried once up front.

        Returns the number of games claimed.
        """
        collected = await self.page.locator(COLLECTED).count()
        logger.info(f"Number of already claimed games (total): {collected}")
        cards = await self.page.query_selector_all(DIRECT_OFFER)
        logger.info(f"Number of free unclaimed games (Prime Gaming): {len(cards)}")

        claimed = 0
        for card in cards:
            title = await self._read_title(card)
            logger.info(f"Current free game: {title}")
            if self.config.dryrun:
                continue
            path = screenshot_path(self.config.screenshots_dir, INTERNAL_STORE, title)
            await capture_evidence(card, path)
            button = await card.query_selector(CLAIM_GAME_BUTTON)
            if button is None:
                raise ClaimUIFailure(f"No 'Claim game' button for {title}")
            await button.click()
            claimed += 1
            self._record(ClaimRecord(title=title, time=timestamp(), store=INTERNAL_STORE))
        return claimed

    async def claim_external_offers(self) -> int:
        """
        Claim games that are fulfilled by another store (GOG, Legacy Games, Epic, ...).

        Each claim navigates away and removes the card, so the list is queried
        again before every claim. Offers that need account linking keep their card
        and are tried only once per run.

        Returns the number of offers processed, including ones that need account linking.
        """
        if self.config.dryrun:
            cards = await self.page.query_selector_all(EXTERNAL_OFFER)
            logger.info(f"Number of free unclaimed games (external stores): {len(cards)}")
            for card in cards:
                logger.info(f"Current free game: {await self._read_title(card)}")
            return 0

        attempted: set[str] = set()
        while True:
            remaining = await self.page.locator(EXTERNAL_OFFER).count()
            logger.info(f"Number of free unclaimed games (external stores): {remaining}")
            if not remaining:
                break
            card, title = await self._next_external_offer(attempted)
            if card is None:
                logger.warning("No external offer left that was not tried in this run, stopping")
                break
            attempted.add(title)
            logger.info(f"Current free game: {title}")
            await self._claim_external(card, title)
            await self._return_to_offers()
        return len(attempted)

    async def _next_external_offer(self, attempted: set[str]) -> tuple[ElementHandle | None, str]:
        """First external offer card whose title was not tried yet in this run."""
        for card in await self.page.query_selector_all(EXTERNAL_OFFER):
            title = await self._read_title(card)
            if title not in attempted:
                return card, title
        return None, ""

    async def _wait_for_claim_outcome(self) -> ClaimOutcome:
        """Wait for whichever confirmation the store integration uses and confirm it."""
        candidates = [
            (ClaimOutcome.CLAIM_NOW, CLAIM_NOW_BUTTON),
            (ClaimOutcome.COMPLETE_CLAIM, COMPLETE_CLAIM_BUTTON),
            (ClaimOutcome.LINK_ACCOUNT, LINK_ACCOUNT),
        ]
        try:
            index, _ = await race(*(self.page.wait_for_selector(selector) for _, selector in candidates))
        except PlaywrightError as e:
            raise ClaimUIFailure(f"Offer page showed neither a claim button nor account linking: {e}") from e
        outcome, selector = candidates[index]
        if outcome is not ClaimOutcome.LINK_ACCOUNT:
            await self.page.click(selector)
        return outcome

    async def _claim_external(self, card: ElementHandle, title: str) -> ClaimRecord | None:
        """Claim one external offer. Returns its record, or None if account linking is required."""
        claim = await card.query_selector(CLAIM_LINK)
        if claim is None:
            raise ClaimUIFailure(f"No 'Claim' link for {title}")
        await claim.click()
        outcome = await self._wait_for_claim_outcome()

        subtitle = await self.page.query_selector(STORE_SUBTITLE)
        if subtitle is None:
            raise ClaimUIFailure(f"No store subtitle on the offer page of {title}")
        store = parse_store_name(await subtitle.inner_text())
        logger.info(f"  External store: {store}")

        if outcome is ClaimOutcome.LINK_ACCOUNT or await self.page.locator(LINK_ACCOUNT).count():
            # not recorded, so it shows up again once the account is linked
            logger.error("  Account linking is required to claim this offer!")
            return None

        code = None
        if store in REDEEM_URLS:
            code = await self.page.input_value(CODE_INPUT)
            logger.info(f"  Code to redeem game: {code}")
            redeem_url = REDEEM_URLS[store]
            if store == DYNAMIC_REDEEM_STORE:
                link = await self.page.query_selector(LEGACY_GAMES_LINK)
                href = await link.get_attribute("href") if link else None
                redeem_url = href or redeem_url
            logger.info(f"  URL to redeem game: {redeem_url}")

        record = ClaimRecord(title=title, time=timestamp(), store=store, code=code or None, url=self.page.url)
        self._record(record)
        # keep the page in case the code is needed again
        path = screenshot_path(self.config.screenshots_dir, "external", title)
        await capture_evidence(self.page, path, full_page=True)
        return record

    async def capture_overview(self) -> bool:
        """Full-page screenshot at the end of a run, named after the current time."""
        path = screenshot_path(self.config.screenshots_dir, timestamp())
        return await capture_evidence(self.page, path, full_page=True)
