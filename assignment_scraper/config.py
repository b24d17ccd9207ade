# assignment_scraper/config.py
"""
Process-wide configuration, read once from the environment.

Every locator the scraper uses lives in :class:`Selectors` so a deployment can
override any of them when the school's markup drifts. Multi-variant locators
(the list-view toggle) are ``||``-separated in the environment because CSS
selector lists already use commas.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .errors import ConfigurationError

# ────────────────────────────────────────────────────────────────────────────────
# Defaults

DEFAULT_TITLE = "h1, .assignment-title, .detail-title"
DEFAULT_COURSE = ".assignment-course, .detail-course"
DEFAULT_DUE = ".assignment-due, .detail-due"
DEFAULT_DESCRIPTION = ".assignment-description, .detail-description"
DEFAULT_RESOURCE_AREA = ".assignment-resources, .detail-resources"
DEFAULT_LINK_PRECISE = 'a[href*="assignmentdetail"], a[href*="assignment-detail"]'
DEFAULT_LINK_LOOSE = 'a[href*="Assignment"], a[href*="assignment"]'
DEFAULT_LINK_KEYWORD = "assignment"
DEFAULT_LIST_TOGGLE: Tuple[str, ...] = (
    '[data-view="list"]',
    'button:has-text("List")',
    'a:has-text("List")',
    'label:has-text("List")',
    '[aria-label*="List view"]',
)
DEFAULT_LIST_CONTAINER = "#assignment-center-assignment-items, .assignment-center-list, table.assignment-table"

MULTI_SEPARATOR = "||"


def _scoped(containers: str, anchor: str) -> List[str]:
    return [f"{part.strip()} {anchor}" for part in containers.split(",") if part.strip()]


def default_resource_anchors(area: str, description: str = DEFAULT_DESCRIPTION) -> str:
    """Anchors inside each resource area, external links in the description body,
    and explicit file links anywhere on the page. Mail-to links are filtered later."""
    parts = _scoped(area, "a") + _scoped(description, 'a[href^="http"]')
    parts += ["a.resource-link", "a[download]", 'a[href*="/download"]']
    return ", ".join(parts)


@dataclass(frozen=True)
class Selectors:
    title: str = DEFAULT_TITLE
    course: str = DEFAULT_COURSE
    due: str = DEFAULT_DUE
    description: str = DEFAULT_DESCRIPTION
    resources: str = default_resource_anchors(DEFAULT_RESOURCE_AREA)
    link_precise: str = DEFAULT_LINK_PRECISE
    link_loose: str = DEFAULT_LINK_LOOSE
    link_keyword: str = DEFAULT_LINK_KEYWORD
    list_toggle: Tuple[str, ...] = DEFAULT_LIST_TOGGLE
    list_container: str = DEFAULT_LIST_CONTAINER


@dataclass(frozen=True)
class Credentials:
    identity: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class Settings:
    base_url: str = ""
    identity: str = ""
    secret: str = field(default="", repr=False)
    webhook_secret: str = field(default="", repr=False)
    login_urls: Tuple[str, ...] = ()
    assignment_url: str = ""
    home_url: str = ""
    login_marker: str = "#login"
    app_root_path: str = "/app/student"
    provider: str = "auto"
    login_attempts: int = 3
    retry_backoff: float = 3.0
    headless: bool = True
    navigation_timeout_ms: int = 60_000
    probe_timeout_ms: int = 3_000
    popup_timeout_ms: int = 5_000
    trust_window_ms: int = 5_000
    download_timeout_ms: int = 8_000
    settle_ms: int = 1_200
    deadline_seconds: float = 600.0
    drive_credentials_json: Optional[str] = field(default=None, repr=False)
    drive_folder_id: Optional[str] = None
    trace_path: Optional[str] = None
    selectors: Selectors = field(default_factory=Selectors)

    @property
    def credentials(self) -> Credentials:
        return Credentials(self.identity, self.secret)

    def missing(self) -> List[str]:
        """Names of required variables that are not set."""
        out = []
        if not self.identity:
            out.append("BB_USERNAME")
        if not self.secret:
            out.append("BB_PASSWORD")
        if not self.base_url:
            out.append("BB_BASE")
        return out

    def is_logged_in_url(self, url: str) -> bool:
        return self.app_root_path in url and not self.shows_login_marker(url)

    def shows_login_marker(self, url: str) -> bool:
        return self.login_marker in url


# ────────────────────────────────────────────────────────────────────────────────
# Parsing helpers

def _text(env: Mapping[str, str], key: str, default: str = "") -> str:
    value = (env.get(key) or "").strip()
    return value or default


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _text(env, key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative, got {value}")
    return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = _text(env, key)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative, got {value}")
    return value


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _text(env, key).lower()
    if not raw:
        return default
    if raw in {"1", "true", "yes", "on"}:
        return True
    if raw in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {raw!r}")


def _multi(env: Mapping[str, str], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = _text(env, key)
    if not raw:
        return default
    parts = tuple(p.strip() for p in raw.split(MULTI_SEPARATOR) if p.strip())
    return parts or default


def load_selectors(env: Mapping[str, str]) -> Selectors:
    area = _text(env, "DETAIL_RES_AREA_SEL", DEFAULT_RESOURCE_AREA)
    description = _text(env, "DETAIL_DESC_SELECTOR", DEFAULT_DESCRIPTION)
    return Selectors(
        title=_text(env, "DETAIL_TITLE_SELECTOR", DEFAULT_TITLE),
        course=_text(env, "DETAIL_COURSE_SELECTOR", DEFAULT_COURSE),
        due=_text(env, "DETAIL_DUE_SELECTOR", DEFAULT_DUE),
        description=description,
        resources=_text(env, "DETAIL_RES_ANCH_SEL", default_resource_anchors(area, description)),
        link_precise=_text(env, "LIST_LINK_PRECISE_SELECTOR", DEFAULT_LINK_PRECISE),
        link_loose=_text(env, "LIST_LINK_SELECTOR", DEFAULT_LINK_LOOSE),
        link_keyword=_text(env, "LIST_LINK_KEYWORD", DEFAULT_LINK_KEYWORD),
        list_toggle=_multi(env, "LIST_TOGGLE_SELECTOR", DEFAULT_LIST_TOGGLE),
        list_container=_text(env, "LIST_CONTAINER_SELECTOR", DEFAULT_LIST_CONTAINER),
    )


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env
    base = _text(env, "BB_BASE").rstrip("/")

    login_urls = tuple(u.strip() for u in _text(env, "BB_LOGIN_URL").split(",") if u.strip())
    if not login_urls:
        login_urls = (f"{base}/app/login", f"{base}/app/student#login")

    settings = Settings(
        base_url=base,
        identity=_text(env, "BB_USERNAME"),
        secret=_text(env, "BB_PASSWORD"),
        webhook_secret=_text(env, "WEBHOOK_SECRET"),
        login_urls=login_urls,
        assignment_url=_text(env, "BB_ASSIGN_URL", f"{base}/app/student#assignment-center"),
        home_url=_text(env, "BB_HOME_URL", f"{base}/app/student"),
        provider=_text(env, "BB_IDP", "auto").lower(),
        login_attempts=_int(env, "BB_LOGIN_ATTEMPTS", 3),
        retry_backoff=_float(env, "BB_RETRY_BACKOFF", 3.0),
        headless=_bool(env, "HEADLESS", True),
        navigation_timeout_ms=_int(env, "NAV_TIMEOUT_MS", 60_000),
        probe_timeout_ms=_int(env, "PROBE_TIMEOUT_MS", 3_000),
        popup_timeout_ms=_int(env, "POPUP_TIMEOUT_MS", 5_000),
        trust_window_ms=_int(env, "TRUST_WINDOW_MS", 5_000),
        download_timeout_ms=_int(env, "DOWNLOAD_TIMEOUT_MS", 8_000),
        settle_ms=_int(env, "SETTLE_MS", 1_200),
        deadline_seconds=_float(env, "SCRAPE_DEADLINE_SECONDS", 600.0),
        drive_credentials_json=_text(env, "GOOGLE_SERVICE_ACCOUNT_JSON") or None,
        drive_folder_id=_text(env, "GDRIVE_FOLDER_ID") or None,
        trace_path=_text(env, "TRACE_PATH") or None,
        selectors=load_selectors(env),
    )
    if settings.login_attempts < 1:
        raise ConfigurationError("BB_LOGIN_ATTEMPTS must be at least 1")
    return settings
