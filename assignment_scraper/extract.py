# assignment_scraper/extract.py
"""
Field extraction for one assignment detail page.

Nothing here raises because a field is missing: absent text becomes ``""``
and a resource that cannot be downloaded or mirrored is kept as its raw link.
"""
from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import List, Optional

from playwright.async_api import Download, Locator, Page, Error as PlaywrightError, TimeoutError as PlaywrightTimeout  # type: ignore

from .config import Settings
from .errors import MirrorUnavailable
from .mirror import DriveMirror
from .models import LINK_MIME_TYPE, AssignmentLink, AssignmentRecord, ResourceRecord

logger = logging.getLogger(__name__)

TEXT_TIMEOUT_MS = 2_000


class FieldExtractor:
    def __init__(self, page: Page, settings: Settings, mirror: Optional[DriveMirror] = None) -> None:
        self.page, self.settings, self.mirror = page, settings, mirror
        self.selectors = settings.selectors

    async def extract(self, link: AssignmentLink) -> AssignmentRecord:
        title = await self.extract_text(self.selectors.title, single_line=True)
        course = await self.extract_text(self.selectors.course)
        due = await self.extract_text(self.selectors.due)
        description = await self.extract_text(self.selectors.description)

        resources: List[ResourceRecord] = []
        detail_url = self.page.url
        for anchor in await self.resource_anchors():
            record = await self.resolve_resource(anchor, detail_url)
            if record is not None:
                resources.append(record)

        return AssignmentRecord(
            url=link.url, title=title, course=course, due=due,
            description=description, resources=tuple(resources),
        )

    async def extract_text(self, selector: str, single_line: bool = False) -> str:
        """Trimmed text of the first match, or "" when absent.

        Inner line breaks are kept unless ``single_line`` folds all whitespace.
        """
        try:
            text = await self.page.locator(selector).first.text_content(timeout=TEXT_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug("no text for %r: %s", selector, e)
            return ""
        if single_line:
            return " ".join((text or "").split())
        return (text or "").strip()

    async def resource_anchors(self) -> List[Locator]:
        anchors = self.page.locator(self.selectors.resources)
        try:
            count = await anchors.count()
        except PlaywrightError as e:
            logger.warning("could not list resource links: %s", e)
            return []
        return [anchors.nth(i) for i in range(count)]

    async def resolve_resource(self, anchor: Locator, detail_url: str) -> Optional[ResourceRecord]:
        """Click the anchor; mirror the file if a download starts, else keep the link."""
        try:
            href = (await anchor.get_attribute("href", timeout=TEXT_TIMEOUT_MS) or "").strip()
            name = " ".join((await anchor.text_content(timeout=TEXT_TIMEOUT_MS) or "").split())
        except PlaywrightError as e:
            logger.debug("resource anchor vanished: %s", e)
            return None
        name = name or "resource"
        if href.lower().startswith("mailto:"):
            return None

        tabs_before = set(self.page.context.pages)
        try:
            download = await self._click_for_download(anchor)
        finally:
            await self._close_new_tabs(tabs_before)
        if download is not None:
            try:
                mirrored = await self._mirror(download, name)
            finally:
                await self._discard(download)
            if mirrored is not None:
                return mirrored

        await self._return_to(detail_url)
        if not href:
            return None
        return ResourceRecord(name=name, href=href, mime_type=LINK_MIME_TYPE)

    async def _click_for_download(self, anchor: Locator) -> Optional[Download]:
        try:
            async with self.page.expect_download(timeout=self.settings.download_timeout_ms) as info:
                await anchor.click(timeout=self.settings.download_timeout_ms)
            return await info.value
        except PlaywrightTimeout:
            return None  # plain link, no file
        except PlaywrightError as e:
            logger.debug("resource click failed: %s", e)
            return None

    async def _close_new_tabs(self, before) -> None:
        """Close pages a resource click opened (target=_blank and the like)."""
        for tab in list(self.page.context.pages):
            if tab in before or tab.is_closed():
                continue
            logger.debug("closing tab opened by resource click: %s", tab.url)
            try:
                await tab.close()
            except PlaywrightError as e:
                logger.debug("tab already gone: %s", e)

    async def _mirror(self, download: Download, fallback_name: str) -> Optional[ResourceRecord]:
        if self.mirror is None:
            return None
        filename = download.suggested_filename or fallback_name
        mime_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            path = await download.path()
            data = Path(path).read_bytes()
            uploaded = await self.mirror.upload(filename, data, mime_type)
        except (MirrorUnavailable, PlaywrightError, OSError) as e:
            logger.warning("mirroring %s failed, keeping the link: %s", filename, e)
            return None
        return ResourceRecord(name=uploaded.name, href=uploaded.href, mime_type=uploaded.mime_type)

    async def _discard(self, download: Download) -> None:
        try:
            await download.delete()
        except PlaywrightError as e:
            logger.debug("could not delete download temp file: %s", e)

    async def _return_to(self, detail_url: str) -> None:
        """A plain link may have navigated the page; go back for the next anchor."""
        if self.page.url == detail_url:
            return
        try:
            await self.page.goto(detail_url, wait_until="domcontentloaded",
                                 timeout=self.settings.navigation_timeout_ms)
        except PlaywrightError as e:
            logger.warning("could not return to %s: %s", detail_url, e)
