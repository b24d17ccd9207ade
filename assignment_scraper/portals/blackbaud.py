# assignment_scraper/portals/blackbaud.py
from __future__ import annotations
import logging
from typing import List, Optional, Set, Tuple

from playwright.async_api import Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeout  # type: ignore
from tenacity import (
    AsyncRetrying, stop_after_attempt, wait_exponential,
    retry_if_exception_type, before_sleep_log
)

from ..config import Settings
from ..errors import AuthenticationFailed, NoAssignmentsFound
from ..models import AssignmentLink
from . import get_provider
from .base import PortalEngine
from .links import discover_links
from .providers import FILL_IDENTITY, PASSWORD, STATES, IdentityProvider, LoginStep

logger = logging.getLogger(__name__)

class BlackbaudPortal(PortalEngine):
    """Blackbaud student app ("myschoolapp") assignment center.

    Login is a probe-then-act loop over the identity provider's step table,
    so the same code handles the native form, a school SSO button, Google or
    Microsoft sign-in, whichever the school happens to present.
    """

    MAX_ACTIONS = 10

    def __init__(self, page: Page, settings: Settings,
                 provider: Optional[IdentityProvider] = None) -> None:
        super().__init__(page, settings)
        self.provider = provider or get_provider(settings.provider)
        self.surface: Page = page  # where login steps run; may become a popup

    # ── LOGIN ─────────────────────────────────────────────────────────────────
    async def login(self) -> None:
        """Reach the student app or raise AuthenticationFailed.

        The whole flow is retried from the entry page; the browser context
        (and its cookies) is kept between attempts.
        """
        backoff = self.settings.retry_backoff
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.login_attempts),
            wait=wait_exponential(multiplier=backoff, max=backoff * 5),
            retry=retry_if_exception_type((AuthenticationFailed, PlaywrightError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,  # <- expose inner exception instead of RetryError
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._login_once()
        except PlaywrightError as e:
            raise AuthenticationFailed(self.page.url, reason=f"browser error during login: {e}") from e

    async def _login_once(self) -> None:
        self.surface = self.page
        await self._open_entry()
        if self.settings.is_logged_in_url(self.page.url):
            logger.info("session already authenticated (%s)", self.page.url)
            return
        await self._run_steps()
        await self._answer_device_trust()
        await self._fold_back()
        url = self.page.url
        if not self.settings.is_logged_in_url(url):
            raise AuthenticationFailed(url)
        logger.info("logged in; landed on %s", url)

    async def _open_entry(self) -> None:
        """Load the first entry URL that answers without a transport error."""
        last_error: Optional[PlaywrightError] = None
        for url in self.settings.login_urls:
            try:
                await self.page.goto(url, wait_until="domcontentloaded",
                                     timeout=self.settings.navigation_timeout_ms)
            except PlaywrightError as e:
                logger.warning("entry %s did not load: %s", url, e)
                last_error = e
                continue
            await self.settle(self.page)
            return
        if last_error is None:
            raise AuthenticationFailed(self.page.url, reason="no login URL configured")
        raise last_error

    def _ordered_steps(self) -> List[LoginStep]:
        return [step for state in STATES for step in self.provider.steps_for(state)]

    async def _run_steps(self) -> None:
        acted: Set[Tuple[str, LoginStep]] = set()
        for _ in range(self.MAX_ACTIONS):
            if self.settings.is_logged_in_url(self.page.url):
                return
            if self.surface is not self.page and self.surface.is_closed():
                # provider window closed itself after handing back the session
                self.surface = self.page
            candidates = [
                (marker, step)
                for step in self._ordered_steps()
                for marker in step.markers
                if (self.surface.url, step) not in acted
            ]
            found = await self._probe(self.surface, candidates, self.settings.probe_timeout_ms)
            if found is None:
                return
            marker, step = found
            acted.add((self.surface.url, step))
            logger.info("login step %s: %s", step.state, marker)
            await self._act(step, marker)
        logger.warning("gave up after %d login actions on %s", self.MAX_ACTIONS, self.surface.url)

    async def _act(self, step: LoginStep, marker: str) -> None:
        field = self.surface.locator(marker).first
        if step.fill is None:
            await self._click(marker, step.opens_surface)
        else:
            creds = self.settings.credentials
            value = creds.identity if step.fill == FILL_IDENTITY else creds.secret
            await field.fill(value)
            if step.fill == FILL_IDENTITY and await self._password_visible():
                return  # single form; submitted together with the password
            submit = await self._first_visible(self.surface, step.submit)
            if submit:
                await self._click(submit, step.opens_surface)
            else:
                await field.press("Enter")
        if self.surface.is_closed():
            self.surface = self.page
        await self.settle(self.surface)

    async def _password_visible(self) -> bool:
        markers = [m for step in self.provider.steps_for(PASSWORD) for m in step.markers]
        return await self._first_visible(self.surface, markers) is not None

    async def _click(self, selector: str, opens_surface: bool = False) -> None:
        """Click; when the target may open a window, switch to it if one appears."""
        target = self.surface.locator(selector).first
        if not opens_surface:
            await target.click()
            return
        try:
            async with self.surface.context.expect_page(timeout=self.settings.popup_timeout_ms) as page_info:
                await target.click()
            popup = await page_info.value
        except PlaywrightTimeout:
            return  # navigated in place
        await popup.wait_for_load_state("domcontentloaded")
        logger.info("identity provider opened a new window: %s", popup.url)
        self.surface = popup

    async def _answer_device_trust(self) -> None:
        prompt = self.provider.trust
        if prompt is None:
            return
        if self.surface is self.page and self.settings.is_logged_in_url(self.page.url):
            return
        surface = self.page if self.surface.is_closed() else self.surface
        if await self._first_visible(surface, prompt.markers, self.settings.trust_window_ms) is None:
            return
        button = (await self._first_visible(surface, prompt.affirm)
                  or await self._first_visible(surface, prompt.dismiss))
        if button is None:
            logger.warning("device-trust prompt shown but no known button on %s", surface.url)
            return
        logger.info("answering device-trust prompt with %s", button)
        await surface.locator(button).first.click()
        await self.settle(self.page if surface.is_closed() else surface)

    async def _fold_back(self) -> None:
        """Return to the primary page, closing any provider window."""
        if self.surface is self.page:
            return
        popup, self.surface = self.surface, self.page
        if not popup.is_closed():
            try:
                await popup.close()
            except PlaywrightError as e:
                logger.debug("provider window already gone: %s", e)
        await self.settle(self.page)
        if not self.settings.is_logged_in_url(self.page.url):
            await self.page.goto(self.settings.home_url, wait_until="domcontentloaded",
                                 timeout=self.settings.navigation_timeout_ms)
            await self.settle(self.page)

    # ── NAVIGATION ────────────────────────────────────────────────────────────
    async def fetch_assignment_links(self) -> List[AssignmentLink]:
        """Open the assignment center in list view and collect detail links."""
        await self._open_assignment_center()
        if self.settings.shows_login_marker(self.page.url):
            logger.warning("assignment center bounced to login (%s); logging in again", self.page.url)
            await self.login()
            await self._open_assignment_center()
            if self.settings.shows_login_marker(self.page.url):
                raise AuthenticationFailed(self.page.url, reason="assignment center still asks for login")

        await self._switch_to_list_view()
        await self._wait_for_list()

        links = discover_links(await self.getSoup(), self.page.url, self.settings.selectors)
        if not links:
            raise NoAssignmentsFound(self.page.url)
        return links

    async def _open_assignment_center(self) -> None:
        await self.page.goto(self.settings.assignment_url, wait_until="domcontentloaded",
                             timeout=self.settings.navigation_timeout_ms)
        await self.settle(self.page)  # give SPA time to render

    async def _switch_to_list_view(self) -> None:
        toggle = await self._first_visible(self.page, self.settings.selectors.list_toggle,
                                           self.settings.probe_timeout_ms)
        if toggle is None:
            logger.info("no list-view toggle; keeping the current view")
            return
        try:
            await self.page.locator(toggle).first.click()
            await self.settle(self.page)
        except PlaywrightError as e:
            logger.warning("list-view toggle %s failed (non-fatal): %s", toggle, e)

    async def _wait_for_list(self) -> None:
        try:
            await self.page.locator(self.settings.selectors.list_container).first.wait_for(
                state="attached", timeout=self.settings.probe_timeout_ms
            )
        except PlaywrightError:
            logger.debug("list container %r never appeared", self.settings.selectors.list_container)
