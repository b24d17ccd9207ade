# assignment_scraper/portals/base.py
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple, TypeVar
from playwright.async_api import Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeout
from bs4 import BeautifulSoup

from ..config import Settings
from ..models import AssignmentLink

logger = logging.getLogger(__name__)

T = TypeVar("T")

class PortalEngine(ABC):
    """Interface the scrape orchestrator drives: log in, then list assignments."""

    POLL_MS = 250
    IDLE_TIMEOUT_MS = 15_000

    def __init__(self, page: Page, settings: Settings) -> None:
        self.page, self.settings = page, settings

    @abstractmethod
    async def login(self) -> None: ...

    @abstractmethod
    async def fetch_assignment_links(self) -> List[AssignmentLink]: ...

    # optional shared helpers ↓
    async def _probe(self, surface: Page, candidates: Sequence[Tuple[str, T]],
                     timeout: int) -> Optional[Tuple[str, T]]:
        """Poll ``candidates`` in priority order for up to ``timeout`` ms.

        Returns the first (selector, payload) whose element is visible, or None.
        """
        rounds = max(1, -(-timeout // self.POLL_MS))
        for i in range(rounds):
            for selector, payload in candidates:
                try:
                    if await surface.locator(selector).first.is_visible():
                        return selector, payload
                except PlaywrightError:
                    # surface is mid-navigation; try again next round
                    continue
            if i < rounds - 1:
                try:
                    await surface.wait_for_timeout(self.POLL_MS)
                except PlaywrightError:
                    break  # surface was closed under us
        return None

    async def _first_visible(self, surface: Page, selectors: Sequence[str],
                             timeout: int = 0) -> Optional[str]:
        found = await self._probe(surface, [(s, s) for s in selectors], timeout)
        return found[0] if found else None

    async def settle(self, surface: Page, ms: Optional[int] = None) -> None:
        """Best-effort wait for the SPA to finish rendering."""
        try:
            await surface.wait_for_load_state(
                "networkidle", timeout=min(self.IDLE_TIMEOUT_MS, self.settings.navigation_timeout_ms)
            )
        except PlaywrightTimeout:
            logger.debug("network never went idle on %s", surface.url)
        await surface.wait_for_timeout(self.settings.settle_ms if ms is None else ms)

    async def getSoup(self) -> BeautifulSoup:
        """Ensure the page is loaded before trying to get the soup"""
        html = await self.page.content()
        return BeautifulSoup(html, "html.parser")
