import asyncio
import logging
import re

from playwright.async_api import Error as PlaywrightError, Page

from . import credentials
from .browser import Watchers, race, suspended_timeout
from .config import Config
from .errors import AuthFailure
from .models import SessionInfo

logger = logging.getLogger(__name__)

URL_CLAIM = "https://gaming.amazon.com/home"
URL_SIGNED_IN = "https://gaming.amazon.com/home?signedIn=true"

SIGN_IN_BUTTON = 'button:has-text("Sign in")'
USER_NAME = '[data-a-target="user-dropdown-first-name-text"]'
COOKIE_ACCEPT = '[aria-label="Cookies usage disclaimer banner"] button:has-text("Accept Cookies")'

SIGNIN_PAGE = re.compile(r"/ap/signin")
MFA_PAGE = re.compile(r"/ap/mfa")


async def establish_session(page: Page, config: Config, background: Watchers | None = None) -> SessionInfo:
    """
    Make sure the browser is signed in to Prime Gaming and return the signed-in account.

    Uses the stored browser profile if it is still signed in, otherwise signs in with the
    configured or prompted credentials, including the two-step verification code.

    The cookie banner is accepted in the background. Pass the run's `background` watchers
    so the click stays pending after signing in; without them it is only attempted until
    this function returns.

    Raises:
        AuthFailure: if signing in is impossible (no credentials in headless mode) or the
            account name cannot be read afterwards.
    """
    session = SessionInfo()

    logger.info("Opening Prime Gaming")
    await page.goto(URL_CLAIM, wait_until="domcontentloaded")
    # the page renders either marker, whichever shows up first tells us the state
    try:
        await race(page.wait_for_selector(SIGN_IN_BUTTON), page.wait_for_selector(USER_NAME))
    except PlaywrightError as e:
        raise AuthFailure(f"Could not tell whether the browser is signed in: {e}") from e

    async with Watchers() as local:
        # saves screen space when not headless, the banner does not always show up
        (background or local).spawn(page.click(COOKIE_ACCEPT), "cookie banner")

        while await page.locator(SIGN_IN_BUTTON).count() > 0:
            logger.error("Not signed in anymore.")
            await page.click(SIGN_IN_BUTTON)
            with suspended_timeout(page.context, config):
                await _sign_in(page, config)

    session.user_name = await _extract_user_name(page)
    session.signed_in = True
    logger.info(f"Signed in as {session.user_name}")
    return session


async def _sign_in(page: Page, config: Config) -> None:
    """One sign-in attempt. Returns once Amazon redirects back to the signed-in claim page."""
    logger.info("Press Ctrl+D to skip if you want to login in the browser (not possible in headless mode).")
    email = await credentials.get_email(config)
    password = await credentials.get_password(config) if email else ""

    async with Watchers() as watchers:
        if email and password:
            await page.fill("[name=email]", email)
            await page.fill("[name=password]", password)
            await page.check("[name=rememberMe]")
            # at most one of these fires, or neither if the login went through directly
            watchers.spawn(_report_wrong_credentials(page), "wrong credentials")
            watchers.spawn(_handle_mfa(page, config), "two-step verification")
            # both must be listening for navigations before the form is submitted
            await asyncio.sleep(0)
            await page.click('input[type="submit"]')
        elif config.headless:
            raise AuthFailure(
                "No credentials available in headless mode. Set PG_EMAIL and PG_PASSWORD, "
                "or run with --no-headless to login in the opened browser."
            )
        else:
            logger.info("Waiting for you to login in the browser.")

        await page.wait_for_url(URL_SIGNED_IN)
        # leaving the block cancels a watcher that is still waiting, e.g. an unsent OTP


async def _wait_for_navigation(page: Page, pattern: re.Pattern) -> None:
    await page.wait_for_event(
        "framenavigated",
        predicate=lambda frame: frame == page.main_frame and pattern.search(frame.url) is not None,
    )


async def _report_wrong_credentials(page: Page) -> None:
    await _wait_for_navigation(page, SIGNIN_PAGE)
    message = await page.locator(".a-alert-content").first.inner_text()
    logger.error(f"Sign in failed: {message.strip()}")


async def _handle_mfa(page: Page, config: Config) -> None:
    await _wait_for_navigation(page, MFA_PAGE)
    logger.info("Two-Step Verification - enter the One Time Password (OTP), e.g. generated by your Authenticator App")
    await page.check("[name=rememberDevice]")
    otp = await credentials.get_otp(config)
    await page.type("input[name=otpCode]", otp)
    await page.click('input[type="submit"]')


async def _extract_user_name(page: Page) -> str:
    """Read the first name shown in the account dropdown."""
    try:
        name = (await page.locator(USER_NAME).first.inner_text()).strip()
    except PlaywrightError as e:
        raise AuthFailure(f"Could not read the signed-in account name: {e}") from e
    if not name:
        raise AuthFailure("Signed-in account name is empty")
    return name
