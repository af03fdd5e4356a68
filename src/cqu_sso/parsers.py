"""Scrapers for the small values the flows pull out of pages and redirects.

Every value here is opaque: it is located and returned as-is, never
interpreted. Page layouts are versioned independently, so each scrape
point has its own function even where two look alike.
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .exceptions import PageParseError

# Authorization code in the mycqu OAuth redirect
AUTH_CODE_PATTERN = re.compile(r"\?code=([^&]+)&")

# Ticket embedded in the card page's script redirect
PAGE_TICKET_PATTERN = re.compile(r"ticket=(.*)'")


@dataclass
class LoginPageData:
    """Values published by the SSO login page for one login attempt."""

    croypto: str
    flowkey: str


def _text_by_id(soup: BeautifulSoup, tag: str, element_id: str) -> str:
    node = soup.find(tag, id=element_id)
    if node is None:
        raise PageParseError(element_id)
    return node.get_text()


def parse_login_page(html: str) -> LoginPageData:
    """Extract the salt and flow key from the SSO login page.

    Args:
        html: Login page body.

    Returns:
        LoginPageData with the base64 salt and the ``execution`` flow key.

    Raises:
        PageParseError: If either element is missing.
    """
    soup = BeautifulSoup(html, "lxml")
    return LoginPageData(
        croypto=_text_by_id(soup, "p", "login-croypto"),
        flowkey=_text_by_id(soup, "p", "login-page-flowkey"),
    )


def extract_sso_ticket_id(html: str) -> str | None:
    """Extract the SSO ticket id from the card service landing page."""
    soup = BeautifulSoup(html, "lxml")
    node = soup.find("input", id="ssoticketid")
    if node is None:
        return None
    value = node.get("value")
    return value or None


def extract_auth_code(location: str) -> str | None:
    """Extract the OAuth authorization code from a redirect location."""
    match = AUTH_CODE_PATTERN.search(location)
    return match.group(1) if match else None


def extract_page_ticket(html: str) -> str | None:
    """Extract the card page ticket from a page body."""
    match = PAGE_TICKET_PATTERN.search(html)
    return match.group(1) if match else None
