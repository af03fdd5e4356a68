"""Access grant for the campus card site (card.cqu.edu.cn).

Access comes in two stages:

- Stage A (``access_card``): redeem an SSO service ticket on the card site
  and hand the SSO ticket id to the hall ticket endpoint. The ticket id is
  scraped from the landing page form input ``ssoticketid``, with the
  ``ticket=...'`` script pattern as a fallback. This authorizes the card
  hall endpoints via cookies.
- Stage B (``ensure_synjones_auth``): the utility fee endpoints live behind
  a second auth service. A page ticket is scraped from the card page and
  exchanged for a bearer token, sent as the ``synjones-auth`` cookie. It
  runs lazily on first use and is cached in the session afterwards.

The two ticket scrapes target different pages and are kept separate.
"""

import logging
from typing import Callable

import httpx

from .access_info import CardAccessInfo
from .config import Service
from .exceptions import AccessError, NotAccessError, ProtocolError
from .parsers import extract_page_ticket, extract_sso_ticket_id
from .session import Session, guarded_execute, redirect_location
from .sso import access_service

logger = logging.getLogger(__name__)

# Menu entry of the utility fee page on the card site
UTILITY_MENU_NAME = "电费、网费"


async def access_card(session: Session) -> CardAccessInfo:
    """Grant the session access to the card site.

    Returns:
        The stored access info, without a secondary token yet.

    Raises:
        NotLoginError: If the session has not logged in through SSO.
        ProtocolError: If the SSO ticket id cannot be found.
        AccessError: If the hall ticket endpoint rejects the ticket.
    """
    endpoints = session.endpoints
    resp = await access_service(session, endpoints.card_service_url)

    location = redirect_location(resp)
    if resp.is_redirect and location:
        resp = await session.get(location)

    sso_ticket_id = extract_sso_ticket_id(resp.text) or extract_page_ticket(resp.text)
    if sso_ticket_id is None:
        raise ProtocolError("SSO ticket id not found on card landing page", status_code=resp.status_code)

    resp = await session.post(
        endpoints.card_hall_ticket_url,
        data={
            "errorcode": "1",
            "ssoticketid": sso_ticket_id,
            "continueurl": endpoints.card_hall_ticket_url,
        },
    )
    if resp.status_code not in (200, 302):
        raise AccessError(f"Hall ticket rejected with status {resp.status_code}", service=Service.CARD.value)

    info = CardAccessInfo(synjones_auth=None)
    session.access_infos.set(info)
    logger.info("Granted access to card")
    return info


async def get_page_ticket(session: Session) -> str:
    """Scrape a page ticket for the utility fee auth service."""
    endpoints = session.endpoints

    def build(s: Session) -> httpx.Request:
        return s.build_request(
            "POST",
            endpoints.card_page_url,
            data={
                "EMenuName": UTILITY_MENU_NAME,
                "MenuName": UTILITY_MENU_NAME,
                "Url": endpoints.card_page_ticket_post_form_url,
                "apptype": "4",
                "flowID": "10002",
            },
        )

    resp = await guarded_execute(session, Service.CARD, build)
    if resp.status_code != 200:
        raise AccessError(f"Get Page Ticket Error: status {resp.status_code}", service=Service.CARD.value)

    ticket = extract_page_ticket(resp.text)
    if ticket is None:
        raise ProtocolError("Page Ticket Not Found", status_code=resp.status_code)
    return ticket


async def get_synjones_auth(session: Session, ticket: str) -> str:
    """Exchange a page ticket for the ``synjones-auth`` bearer value."""
    endpoints = session.endpoints

    def build(s: Session) -> httpx.Request:
        return s.build_request(
            "POST",
            endpoints.card_blade_auth_url,
            data={"ticket": ticket, "json": "true"},
        )

    resp = await guarded_execute(session, Service.CARD, build)
    if resp.status_code != 200:
        raise AccessError(f"Get Synjones Auth Error: status {resp.status_code}", service=Service.CARD.value)

    try:
        data = resp.json().get("data")
        token = data.get("access_token") if isinstance(data, dict) else None
    except (ValueError, AttributeError):
        token = None
    if not isinstance(token, str) or not token:
        raise ProtocolError("Synjones Auth Token Not Found", status_code=resp.status_code)

    return f"bearer {token}"


async def ensure_synjones_auth(session: Session) -> str:
    """Return the cached ``synjones-auth`` value, fetching it on first use.

    Raises:
        NotAccessError: If the session has no card access.
    """
    info = session.access_infos.get(Service.CARD)
    if info is None:
        raise NotAccessError()
    if info.synjones_auth:
        return info.synjones_auth

    ticket = await get_page_ticket(session)
    synjones_auth = await get_synjones_auth(session, ticket)
    session.access_infos.set(CardAccessInfo(synjones_auth=synjones_auth))
    logger.debug("Fetched synjones auth for card")
    return synjones_auth


async def card_request(
    session: Session,
    build_request: Callable[[Session], httpx.Request],
    synjones: bool = False,
) -> httpx.Response:
    """Execute a card site request.

    Args:
        session: Session with card access.
        build_request: Called with the session to build the request.
        synjones: The endpoint needs the ``synjones-auth`` cookie; fetch it
            first if the session does not have it yet.
    """
    if synjones:
        await ensure_synjones_auth(session)
    return await guarded_execute(session, Service.CARD, build_request)
