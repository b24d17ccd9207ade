import pytest
from bs4 import BeautifulSoup

from assignment_scraper.config import Selectors
from assignment_scraper.errors import AuthenticationFailed, NoAssignmentsFound
from assignment_scraper.models import AssignmentLink
from assignment_scraper.portals.blackbaud import BlackbaudPortal
from assignment_scraper.portals.links import dedupe_links, discover_links

from conftest import make_settings
from fakes import (ASSIGN, BASE, LANDED, LOGIN_MARKER, El, Screen, navigate,
                   native_login_screen)

PRECISE_AND_LOOSE = """
<ul>
  <li><a href="/app/student#assignmentdetail/101/1">Essay draft</a></li>
  <li><a href="/app/student#assignmentdetail/102/1">Lab report</a></li>
  <li><a href="/app/student#assignmentdetail/101/1">Essay draft (again)</a></li>
  <li><a href="/app/student#assignment-center">Assignment Center</a></li>
  <li><a href="mailto:instructor@example.com">Email instructor</a></li>
</ul>
"""

KEYWORD_ONLY = """
<div>
  <a href="/app/student#hw/11">Assignment: reading log</a>
  <a href="/app/student#hw/12">Weekly ASSIGNMENT</a>
  <a href="/lms/ASSIGNMENTS/13">Unit plan</a>
  <a href="/app/student#news">News</a>
  <a href="javascript:void(0)">Assignment toggle</a>
  <a>Assignment without a link</a>
</div>
"""


def test_dedupe_keeps_first_text_and_order():
    u1, u2 = f"{BASE}/a/1", f"{BASE}/a/2"
    links = [AssignmentLink(u1, "A"), AssignmentLink(u2, "B"), AssignmentLink(u1, "C")]

    assert dedupe_links(links) == [AssignmentLink(u1, "A"), AssignmentLink(u2, "B")]


def test_precise_tier_wins_over_loose():
    soup = BeautifulSoup(PRECISE_AND_LOOSE, "html.parser")

    links = discover_links(soup, ASSIGN, Selectors())

    assert links == [
        AssignmentLink(f"{BASE}/app/student#assignmentdetail/101/1", "Essay draft"),
        AssignmentLink(f"{BASE}/app/student#assignmentdetail/102/1", "Lab report"),
    ]


def test_loose_tier_used_when_precise_is_empty():
    soup = BeautifulSoup('<a href="/app/student#assignment-center/list">All</a>', "html.parser")

    links = discover_links(soup, ASSIGN, Selectors())

    assert [l.url for l in links] == [f"{BASE}/app/student#assignment-center/list"]


def test_keyword_tier_matches_text_or_href_case_insensitively():
    soup = BeautifulSoup(KEYWORD_ONLY, "html.parser")

    links = discover_links(soup, ASSIGN, Selectors())

    assert [l.url for l in links] == [
        f"{BASE}/app/student#hw/11",
        f"{BASE}/app/student#hw/12",
        f"{BASE}/lms/ASSIGNMENTS/13",
    ]


def test_invalid_selector_falls_through_to_next_tier():
    soup = BeautifulSoup('<a href="/x/assignment/1">One</a>', "html.parser")

    links = discover_links(soup, ASSIGN, Selectors(link_precise="a[href*="))

    assert [l.url for l in links] == [f"{BASE}/x/assignment/1"]


async def test_fetch_switches_to_list_view_and_discovers_links(site, page, settings):
    site[ASSIGN] = Screen(elements={'[data-view="list"]': El()}, html=PRECISE_AND_LOOSE)

    links = await BlackbaudPortal(page, settings).fetch_assignment_links()

    assert len(links) == 2
    assert (ASSIGN, '[data-view="list"]') in page.context.clicks


async def test_missing_list_toggle_is_not_fatal(site, page, settings):
    site[ASSIGN] = Screen(html=PRECISE_AND_LOOSE)

    links = await BlackbaudPortal(page, settings).fetch_assignment_links()

    assert len(links) == 2
    assert page.context.clicks == []


async def test_no_links_anywhere_raises(site, page, settings):
    site[ASSIGN] = Screen(html='<a href="/app/student#news">News</a>')

    with pytest.raises(NoAssignmentsFound) as exc:
        await BlackbaudPortal(page, settings).fetch_assignment_links()

    assert exc.value.url == ASSIGN


async def test_login_marker_triggers_exactly_one_relogin(site, page):
    def log_in(p):
        site[ASSIGN] = Screen(html=PRECISE_AND_LOOSE)
        p.show(LANDED)

    site[ASSIGN] = Screen(redirect=LOGIN_MARKER)
    site[LOGIN_MARKER] = native_login_screen(log_in)
    site[LANDED] = Screen()
    settings = make_settings(login_urls=(LOGIN_MARKER,))

    links = await BlackbaudPortal(page, settings).fetch_assignment_links()

    assert len(links) == 2
    assert page.context.visits.count(ASSIGN) == 2


async def test_login_marker_after_relogin_fails(site, page):
    site[ASSIGN] = Screen(redirect=LOGIN_MARKER)
    site[LOGIN_MARKER] = native_login_screen(navigate(LANDED))
    site[LANDED] = Screen()
    settings = make_settings(login_urls=(LOGIN_MARKER,))

    with pytest.raises(AuthenticationFailed, match="still asks for login"):
        await BlackbaudPortal(page, settings).fetch_assignment_links()

    assert page.context.visits.count(ASSIGN) == 2
