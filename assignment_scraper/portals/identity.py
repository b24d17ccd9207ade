# assignment_scraper/portals/identity.py
from __future__ import annotations

from . import register_provider
from .providers import (FILL_IDENTITY, FILL_SECRET, IDENTITY, PASSWORD,
                        REDIRECT, DeviceTrustPrompt, IdentityProvider,
                        LoginStep)


@register_provider("native")
class NativeLogin(IdentityProvider):
    """Blackbaud's own username/password form."""

    steps = (
        LoginStep(
            IDENTITY,
            markers=('input[name="username"]', "input#Username"),
            fill=FILL_IDENTITY,
            submit=("#nextBtn", 'button:has-text("Next")', 'button[type="submit"]'),
        ),
        LoginStep(
            PASSWORD,
            markers=('input[name="password"]', "input#Password"),
            fill=FILL_SECRET,
            submit=("#loginBtn", 'button[type="submit"]', 'input[type="submit"]'),
        ),
    )


@register_provider("sso")
class InstitutionalSSO(IdentityProvider):
    """School SSO entry buttons that hand off to the district's provider."""

    steps = (
        LoginStep(
            REDIRECT,
            markers=("text=Sign in with SSO", "text=BBID Login Screen", 'a:has-text("Single Sign-On")'),
            opens_surface=True,
        ),
    )


@register_provider("microsoft")
class MicrosoftLogin(IdentityProvider):
    steps = (
        LoginStep(
            REDIRECT,
            markers=("#microsoft-continue-button", 'button:has-text("Sign in with Microsoft")'),
            opens_surface=True,
        ),
        LoginStep(
            IDENTITY,
            markers=('input[name="loginfmt"]',),
            fill=FILL_IDENTITY,
            submit=("#idSIButton9", 'input[type="submit"]'),
        ),
        LoginStep(
            PASSWORD,
            markers=('input[name="passwd"]',),
            fill=FILL_SECRET,
            submit=("#idSIButton9", 'input[type="submit"]'),
        ),
    )
    trust = DeviceTrustPrompt(
        markers=("text=Stay signed in?",),
        affirm=("#idSIButton9", 'input[type="submit"][value="Yes"]'),
        dismiss=("#idBtn_Back", 'button[data-report-value="No"]'),
    )


@register_provider("google")
class GoogleLogin(IdentityProvider):
    steps = (
        LoginStep(
            REDIRECT,
            markers=("#google-continue-button", 'button:has-text("Sign in with Google")'),
            opens_surface=True,
        ),
        LoginStep(
            IDENTITY,
            markers=("input#identifierId", 'input[type="email"]'),
            fill=FILL_IDENTITY,
            submit=("#identifierNext button", 'button:has-text("Next")'),
        ),
        LoginStep(
            PASSWORD,
            markers=('input[name="Passwd"]',),
            fill=FILL_SECRET,
            submit=("#passwordNext button", 'button:has-text("Next")'),
        ),
    )
    trust = DeviceTrustPrompt(
        markers=("text=Trust this device", "text=Remember this device", "text=Don't ask again on this device"),
        affirm=("#primary-button", 'button:has-text("Trust")', 'button:has-text("Yes")'),
        dismiss=('button:has-text("Not now")', 'button:has-text("Skip")', 'button:has-text("Cancel")'),
    )
