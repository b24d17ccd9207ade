# -*- coding: utf-8 -*-
import asyncio
import argparse
import json
import logging
import os
import pathlib
import sys
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional

from dotenv import load_dotenv
from playwright.async_api import (Browser, BrowserContext, Page, Playwright, async_playwright,
                                  Error as PlaywrightError)

from .config import Settings, load_settings
from .errors import ConfigurationMissing, ScrapeDeadlineExceeded, ScraperError
from .extract import FieldExtractor
from .mirror import DriveMirror, mirror_from_settings
from .models import AssignmentLink, AssignmentRecord, ScrapeResult
from .portals.blackbaud import BlackbaudPortal

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


@dataclass
class BrowserSession:
    """One browser, one download-accepting context, one primary page."""

    browser: Browser
    context: BrowserContext
    page: Page
    playwright: Optional[Playwright] = None
    trace_path: Optional[str] = None
    closed: bool = False

    async def close(self) -> None:
        """Release everything; safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self.trace_path:
            try:
                await self.context.tracing.stop(path=self.trace_path)
                logger.info("trace saved to %s", self.trace_path)
            except PlaywrightError as e:
                logger.warning("could not save trace: %s", e)
        try:
            await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


SessionFactory = Callable[[Settings], Awaitable[BrowserSession]]


async def launch_session(settings: Settings) -> BrowserSession:
    pw = await async_playwright().start()
    try:
        browser = await pw.chromium.launch(headless=settings.headless, args=BROWSER_ARGS)
        context = await browser.new_context(accept_downloads=True)
        if settings.trace_path:
            await context.tracing.start(screenshots=True, snapshots=True)
        page = await context.new_page()
        page.set_default_timeout(settings.navigation_timeout_ms)
        page.set_default_navigation_timeout(settings.navigation_timeout_ms)
    except BaseException:
        await pw.stop()
        raise
    return BrowserSession(browser=browser, context=context, page=page,
                          playwright=pw, trace_path=settings.trace_path)


async def scrape_detail(session: BrowserSession, portal: BlackbaudPortal, link: AssignmentLink,
                        settings: Settings, mirror: Optional[DriveMirror]) -> AssignmentRecord:
    """Open one detail page in its own tab and extract it."""
    page = await session.context.new_page()
    try:
        try:
            await page.goto(link.url, wait_until="domcontentloaded",
                            timeout=settings.navigation_timeout_ms)
            await portal.settle(page)
        except PlaywrightError as e:
            logger.warning("detail page %s failed to load: %s", link.url, e)
            return AssignmentRecord(url=link.url)
        return await FieldExtractor(page, settings, mirror).extract(link)
    finally:
        await page.close()


async def scrape_assignments(settings: Settings, mirror: Optional[DriveMirror] = None, *,
                             session_factory: SessionFactory = launch_session) -> ScrapeResult:
    """Log in, list the assignment center, extract every detail page in order."""
    missing = settings.missing()
    if missing:
        raise ConfigurationMissing(missing)

    session = await session_factory(settings)
    try:
        portal = BlackbaudPortal(session.page, settings)
        logger.info("starting login for %s", settings.base_url)
        await portal.login()
        links = await portal.fetch_assignment_links()

        records: List[AssignmentRecord] = []
        for i, link in enumerate(links, 1):
            logger.info("[%d/%d] %s", i, len(links), link.url)
            records.append(await scrape_detail(session, portal, link, settings, mirror))
        return ScrapeResult(assignments=tuple(records))
    finally:
        await session.close()


async def run_scrape(settings: Settings, mirror: Optional[DriveMirror] = None, *,
                     session_factory: SessionFactory = launch_session) -> ScrapeResult:
    """``scrape_assignments`` bounded by ``SCRAPE_DEADLINE_SECONDS`` (0 disables)."""
    work = scrape_assignments(settings, mirror, session_factory=session_factory)
    if not settings.deadline_seconds:
        return await work
    try:
        return await asyncio.wait_for(work, timeout=settings.deadline_seconds)
    except asyncio.TimeoutError:
        raise ScrapeDeadlineExceeded(settings.deadline_seconds) from None


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the Blackbaud assignment center once.")
    parser.add_argument(
        "-o", "--output",
        type=pathlib.Path,
        help="Write the JSON result here instead of stdout."
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window (overrides HEADLESS)."
    )
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging()
    settings = load_settings()
    if args.headed:
        settings = replace(settings, headless=False)

    try:
        result = asyncio.run(run_scrape(settings, mirror_from_settings(settings)))
    except ScraperError as e:
        print(json.dumps({"error": f"{type(e).__name__}: {e}"}), file=sys.stderr)
        return 1

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"{len(result.assignments)} assignments saved to {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
