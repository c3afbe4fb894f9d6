"""
Authenticated LinkedIn profile scrape.

Login happens inside the request's own browser session, either with
supplied credentials or manually in a visible browser window. A CAPTCHA
or two-factor challenge after automatic login is given time to be solved
by hand before the request fails.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

import msgspec

from stealth_search.core.context import ServiceContext
from stealth_search.core.errors import AuthenticationRequired, SelectorNotFound
from stealth_search.pipelines.browser import PageHandle
from stealth_search.utils.logging import get_logger, safe_url
from stealth_search.utils.parsing import FieldStrategy, parse_html

logger = get_logger(__name__)

LoginMethod = Literal["manual-login", "automatic-login"]

LOGIN_URL = "https://www.linkedin.com/login"
LOGIN_SUBMIT = ('button[type="submit"]',)
CHALLENGE_SELECTORS = ('iframe[title*="captcha"]', '[data-test-id="challenge"]')

LOGIN_TIMEOUT_SECONDS = 30.0
MANUAL_TIMEOUT_SECONDS = 300.0
PROFILE_TIMEOUT_SECONDS = 15.0

PROFILE_WARNING = "The profile owner may see that you viewed their profile"

NAME = FieldStrategy("name", ("h1",))
HEADLINE = FieldStrategy("headline", ("[data-generated-suggestion-target] div",))
ABOUT = FieldStrategy(
    "about",
    (
        "#about ~ * section [data-generated-suggestion-target]",
        "#about ~ * [data-generated-suggestion-target]",
    ),
)
EXPERIENCE_ITEMS = FieldStrategy("experience", ("#experience ~ * section li",))
EXPERIENCE_TITLE = FieldStrategy("title", ("div[data-generated-suggestion-target]",))
EXPERIENCE_COMPANY = FieldStrategy("company", ('span[aria-hidden="true"]',))




class Experience(msgspec.Struct):
    title: str
    company: str = ""


class ProfileData(msgspec.Struct):
    """Fields read from a rendered profile page."""

    name: str
    title: str
    about: str
    experiences: list[Experience]
    url: str
    scraped_at: str = msgspec.field(name="scrapedAt")


class ProfileScrape(msgspec.Struct):
    """Payload returned by /linkedin/scrape."""

    data: ProfileData
    method: LoginMethod
    warning: str = PROFILE_WARNING
    success: bool = True




def is_logged_in_url(url: str) -> bool:
    return "linkedin.com/feed" in url or "linkedin.com/in/" in url




def parse_profile(html: str, url: str) -> ProfileData:
    """
    Read profile fields from rendered profile HTML.

    Raises:
        SelectorNotFound: If the page has no name heading
    """
    tree = parse_html(html)
    root = tree.root

    name = NAME.extract(root) if root is not None else ""
    if root is None or not name:
        raise SelectorNotFound(safe_url(url), "profile name heading not found")

    experiences = []
    for item in EXPERIENCE_ITEMS.containers(tree):
        title = EXPERIENCE_TITLE.extract(item)
        if title:
            experiences.append(Experience(title=title, company=EXPERIENCE_COMPANY.extract(item)))

    return ProfileData(
        name=name,
        title=HEADLINE.extract(root),
        about=ABOUT.extract(root),
        experiences=experiences,
        url=url,
        scraped_at=datetime.now(UTC).isoformat(),
    )




class ProfileScraper:
    """
    Logs in and scrapes one profile per call.

    Args:
        context: Shared service instances (browser, rotator, config)
    """

    def __init__(self, context: ServiceContext) -> None:
        self._context = context


    async def _automatic_login(self, page: PageHandle, email: str, password: str) -> None:
        await page.type_into("#username", email)
        await page.type_into("#password", password)
        await page.click_first(LOGIN_SUBMIT, LOGIN_TIMEOUT_SECONDS)

        if await page.wait_for_url(is_logged_in_url, LOGIN_TIMEOUT_SECONDS):
            logger.info("Automatic login succeeded")
            return

        challenge = await page.wait_for_any(CHALLENGE_SELECTORS, 1.0)
        if challenge is None:
            raise AuthenticationRequired(LOGIN_URL, "login failed, check credentials")

        logger.warning("Login challenge (%s), waiting for manual completion", challenge)
        if not await page.wait_for_url(is_logged_in_url, MANUAL_TIMEOUT_SECONDS):
            raise AuthenticationRequired(LOGIN_URL, "login challenge was not completed")


    async def _manual_login(self, page: PageHandle) -> None:
        if self._context.config.headless:
            logger.warning("Manual login requested with a headless browser; set HEADLESS=false")

        logger.info("Waiting up to %.0fs for manual login", MANUAL_TIMEOUT_SECONDS)
        if not await page.wait_for_url(is_logged_in_url, MANUAL_TIMEOUT_SECONDS):
            raise AuthenticationRequired(LOGIN_URL, "manual login timed out")


    async def scrape(
        self,
        url: str,
        *,
        email: str | None = None,
        password: str | None = None,
        manual: bool = False,
    ) -> ProfileScrape:
        """
        Log in and scrape a profile.

        Args:
            url: Profile URL
            email: Account email (automatic login)
            password: Account password (automatic login)
            manual: Wait for the user to log in instead

        Returns:
            ProfileScrape with profile fields and the login method used

        Raises:
            AuthenticationRequired: If login fails or times out
            NavigationError: If a page cannot be loaded
            SelectorNotFound: If the profile page has no name heading
        """
        if not manual and not (email and password):
            raise AuthenticationRequired(LOGIN_URL, "credentials required unless manual=true")

        method: LoginMethod = "manual-login" if manual else "automatic-login"
        identity = self._context.rotator.next()
        timeouts = self._context.config.timeouts

        logger.info("Profile scrape of %s (%s)", safe_url(url), method)

        async with self._context.browser.session(identity, None) as session:
            page = await session.navigate(LOGIN_URL, timeouts.navigation)

            if manual:
                await self._manual_login(page)
            else:
                await self._automatic_login(page, email or "", password or "")

            page = await session.navigate(url, timeouts.navigation)
            await page.wait_for_any(("h1",), PROFILE_TIMEOUT_SECONDS)

            profile = parse_profile(await page.html(), page.final_url)

        logger.info("Scraped profile with %d experiences", len(profile.experiences))
        return ProfileScrape(data=profile, method=method)
