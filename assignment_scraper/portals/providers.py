# assignment_scraper/portals/providers.py
"""
Login strategy tables.

A provider is described as data: an ordered tuple of :class:`LoginStep`
entries (what to look for, what to do once it is visible) plus an optional
:class:`DeviceTrustPrompt`. The Blackbaud engine walks these tables with a
probe-then-act loop, so supporting another identity provider means adding a
table in ``identity.py``, not another branch in the login code.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable, Optional, Tuple

# Login states, in the order the flow normally meets them.
REDIRECT = "redirect"      # "Sign in with SSO" / provider continue buttons
IDENTITY = "identity"      # username or email prompt
PASSWORD = "password"      # native or federated password prompt
STATES: Tuple[str, ...] = (REDIRECT, IDENTITY, PASSWORD)

# What a step types into the matched field.
FILL_IDENTITY = "identity"
FILL_SECRET = "secret"


@dataclass(frozen=True)
class LoginStep:
    state: str
    markers: Tuple[str, ...]
    fill: Optional[str] = None            # None → click the marker
    submit: Tuple[str, ...] = ()          # clicked after a fill; Enter if none visible
    opens_surface: bool = False           # the click may open a new window


@dataclass(frozen=True)
class DeviceTrustPrompt:
    """'Remember this device' / 'Stay signed in?' interstitial."""

    markers: Tuple[str, ...]
    affirm: Tuple[str, ...]
    dismiss: Tuple[str, ...] = ()


class IdentityProvider:
    key: ClassVar[str] = ""
    steps: Tuple[LoginStep, ...] = ()
    trust: Optional[DeviceTrustPrompt] = None

    def steps_for(self, state: str) -> Tuple[LoginStep, ...]:
        return tuple(s for s in self.steps if s.state == state)

    @classmethod
    def combine(cls, providers: Iterable["IdentityProvider"]) -> "IdentityProvider":
        """Merge several tables into one, keeping each table's priority order."""
        providers = list(providers)
        merged = cls()
        merged.steps = tuple(step for p in providers for step in p.steps)
        prompts = [p.trust for p in providers if p.trust is not None]
        if prompts:
            merged.trust = DeviceTrustPrompt(
                markers=_unique(m for t in prompts for m in t.markers),
                affirm=_unique(m for t in prompts for m in t.affirm),
                dismiss=_unique(m for t in prompts for m in t.dismiss),
            )
        return merged


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    seen: dict = {}
    for item in items:
        seen.setdefault(item, None)
    return tuple(seen)
