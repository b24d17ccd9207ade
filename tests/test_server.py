from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from assignment_scraper.errors import AuthenticationFailed
from assignment_scraper.models import AssignmentRecord, ScrapeResult
from assignment_scraper.runner import run_scrape
from assignment_scraper.server import create_app, secret_matches

from conftest import make_settings
from fakes import ASSIGN, BASE, LANDED, LOGIN, El, Screen, navigate, native_login_screen

SECRET = {"X-Webhook-Secret": "s3cret"}


def client_for(scraper=None, **overrides):
    async def default(settings, mirror):
        return ScrapeResult(assignments=(AssignmentRecord(url=f"{BASE}/a/1", title="Essay"),))

    app = create_app(settings=make_settings(**overrides), mirror=None, scraper=scraper or default)
    return TestClient(app)


def test_liveness():
    resp = client_for().get("/")

    assert resp.status_code == 200
    assert resp.text == "OK"


def test_exact_secret_is_accepted():
    resp = client_for().post("/scrape", headers=SECRET)

    assert resp.status_code == 200
    assert resp.json()["assignments"][0]["title"] == "Essay"


@pytest.mark.parametrize("headers", [{}, {"X-Webhook-Secret": "S3CRET"}, {"X-Webhook-Secret": "wrong"}])
def test_bad_secret_is_unauthorized(headers):
    resp = client_for().post("/scrape", headers=headers)

    assert resp.status_code == 401
    assert resp.json() == {"error": "unauthorized"}


@pytest.mark.parametrize("supplied", [" s3cret", "s3cret ", "\ts3cret\n", "s3cre", "s3crett", ""])
def test_secret_comparison_is_exact(supplied):
    assert not secret_matches("s3cret", supplied)
    assert secret_matches("s3cret", "s3cret")


def test_unset_secret_rejects_everything():
    resp = client_for(webhook_secret="").post("/scrape", headers={"X-Webhook-Secret": ""})

    assert resp.status_code == 401


def test_missing_configuration_is_bad_request():
    resp = client_for(identity="", secret="").post("/scrape", headers=SECRET)

    assert resp.status_code == 400
    assert resp.json() == {"error": "missing required env (BB_USERNAME, BB_PASSWORD)"}


def test_scrape_failure_maps_to_500():
    async def failing(settings, mirror):
        raise AuthenticationFailed(f"{BASE}/app/login")

    resp = client_for(failing).post("/scrape", headers=SECRET)

    assert resp.status_code == 500
    assert resp.json()["error"].startswith("AuthenticationFailed: login did not reach the student app")


def test_unexpected_exception_maps_to_500():
    async def broken(settings, mirror):
        raise RuntimeError("boom")

    resp = client_for(broken).post("/scrape", headers=SECRET)

    assert resp.status_code == 500
    assert resp.json() == {"error": "RuntimeError: boom"}


def test_end_to_end_scrape(site, session_factory):
    detail = f"{BASE}/app/student#assignmentdetail/101/1"
    settings = make_settings()
    sel = settings.selectors
    site[LOGIN] = native_login_screen(navigate(LANDED))
    site[LANDED] = Screen()
    site[ASSIGN] = Screen(
        elements={'[data-view="list"]': El()},
        html='<a href="/app/student#assignmentdetail/101/1">Essay draft</a>',
    )
    site[detail] = Screen(elements={
        sel.title: El("Essay draft"),
        sel.course: El("English 10"),
        sel.resources: [El("Rubric", {"href": "https://docs.example.com/rubric"})],
    })

    async def scraper(cfg, mirror):
        return await run_scrape(cfg, mirror, session_factory=session_factory)

    app = create_app(settings=settings, mirror=None, scraper=scraper)
    resp = TestClient(app).post("/scrape", headers=SECRET)

    assert resp.status_code == 200
    body = resp.json()
    [assignment] = body["assignments"]
    assert assignment == {
        "title": "Essay draft",
        "course": "English 10",
        "due": "",
        "description": "",
        "url": detail,
        "resources": [{"name": "Rubric", "href": "https://docs.example.com/rubric", "mimeType": "text/html"}],
    }
    stamp = datetime.fromisoformat(body["scrapedAt"].replace("Z", "+00:00"))
    assert body["scrapedAt"].endswith("Z")
    assert datetime.now(timezone.utc) - stamp < timedelta(minutes=1)
    assert session_factory.browser.close_calls == 1
