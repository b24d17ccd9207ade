# assignment_scraper/errors.py
from __future__ import annotations


class ScraperError(Exception):
    """Base class; ``status_code`` is what the HTTP boundary answers with."""

    status_code = 500


class Unauthorized(ScraperError):
    status_code = 401

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class ConfigurationMissing(ScraperError):
    """Required deployment settings (base URL, identity, secret) are absent."""

    status_code = 400

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"missing required env ({', '.join(self.missing)})")


class ConfigurationError(ValueError):
    """A configured value could not be parsed at start-up."""


class AuthenticationFailed(ScraperError):
    def __init__(self, last_url: str, reason: str = "login did not reach the student app") -> None:
        self.last_url = last_url
        super().__init__(f"{reason} (last url: {last_url})")


class NoAssignmentsFound(ScraperError):
    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"no assignment links found on {url}")


class ScrapeDeadlineExceeded(ScraperError):
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"scrape did not finish within {seconds:g}s")


class MirrorUnavailable(ScraperError):
    """Attachment upload failed; callers fall back to the raw link."""
