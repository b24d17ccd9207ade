from __future__ import annotations

from typing import Dict

import pytest

from assignment_scraper.config import Settings
from assignment_scraper.runner import BrowserSession

from fakes import ASSIGN, BASE, HOME, LOGIN, FakeBrowser, FakeContext, Screen


def make_settings(**overrides) -> Settings:
    values = dict(
        base_url=BASE,
        identity="student@example.com",
        secret="hunter2",
        webhook_secret="s3cret",
        login_urls=(LOGIN,),
        assignment_url=ASSIGN,
        home_url=HOME,
        retry_backoff=0,
        navigation_timeout_ms=1_000,
        probe_timeout_ms=0,
        popup_timeout_ms=0,
        trust_window_ms=0,
        download_timeout_ms=0,
        settle_ms=0,
        deadline_seconds=0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def site() -> Dict[str, Screen]:
    return {HOME: Screen()}


@pytest.fixture
def context(site) -> FakeContext:
    return FakeContext(site)


@pytest.fixture
def page(context):
    return context.add_page()


@pytest.fixture
def session_factory(context, page):
    """Hands the scraper the fake context instead of launching Chromium."""
    browser = FakeBrowser()
    sessions = []

    async def factory(_settings):
        session = BrowserSession(browser=browser, context=context, page=page)
        sessions.append(session)
        return session

    factory.browser = browser
    factory.sessions = sessions
    return factory
