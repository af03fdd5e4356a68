"""CQU single sign-on (sso.cqu.edu.cn) login, logout and service tickets."""

import logging
from enum import Enum

import httpx

from .encrypt import encrypt_password
from .exceptions import LogoutError, NotLoginError, ProtocolError, TransportError
from .parsers import LoginPageData, parse_login_page
from .session import Session, redirect_location

logger = logging.getLogger(__name__)


class LoginResult(Enum):
    """Outcome of :func:`login`."""

    SUCCESS = "success"
    INCORRECT_LOGIN_CREDENTIALS = "incorrect_login_credentials"


def _require_location(response: httpx.Response) -> str:
    location = redirect_location(response)
    if location is None:
        raise ProtocolError(
            'Expected response has "Location" but not found',
            status_code=response.status_code,
        )
    return location


def build_login_form(username: str, password: str, page: LoginPageData) -> dict[str, str]:
    """Build the credential form posted to the login endpoint."""
    return {
        "username": username,
        "type": "UsernamePassword",
        "_eventId": "submit",
        "geolocation": "",
        "execution": page.flowkey,
        "croypto": page.croypto,
        "password": encrypt_password(page.croypto, password),
    }


async def logout(session: Session) -> None:
    """Log the session out of the SSO gateway.

    Raises:
        LogoutError: If the logout request fails.
    """
    try:
        await session.get(session.endpoints.sso_logout_url)
    except TransportError as e:
        raise LogoutError(f"Logout error: {e}") from e
    session._is_login = False
    logger.info("Logged out of SSO")


async def login(
    session: Session,
    username: str,
    password: str,
    force_relogin: bool = False,
) -> LoginResult:
    """Log in through the SSO gateway.

    If the session already holds an SSO login, the gateway redirects the
    login page and the redirects are followed to finish a silent login.
    With ``force_relogin`` the session is logged out first and credentials
    are submitted regardless.

    Args:
        session: Session to log in.
        username: Student or staff id.
        password: Plaintext password.
        force_relogin: Log out an existing SSO login and log in again.

    Returns:
        ``LoginResult.SUCCESS``, or ``LoginResult.INCORRECT_LOGIN_CREDENTIALS``
        when the gateway rejects the username/password.

    Raises:
        ProtocolError: If the gateway answers in an unexpected way.
        EncryptError: If the page salt is malformed.
        TransportError: On network failure.
    """
    login_url = session.endpoints.sso_login_url
    resp = await session.get(login_url)

    if resp.status_code == 302:
        if force_relogin:
            try:
                await logout(session)
            except LogoutError as e:
                logger.warning(f"Logout before relogin failed, continuing: {e}")
            resp = await session.get(login_url)
            if resp.status_code != 200:
                raise ProtocolError(
                    f"status code {resp.status_code} is got (200 expected) when reloading login page",
                    status_code=resp.status_code,
                )
        else:
            # Existing SSO login: two hops complete it silently
            jump_resp = await session.get(_require_location(resp))
            await session.get(_require_location(jump_resp))
            session._is_login = True
            logger.info("Reused existing SSO login")
            return LoginResult.SUCCESS
    elif resp.status_code != 200:
        raise ProtocolError(
            f"status code {resp.status_code} is got (200 or 302 expected) when loading login page",
            status_code=resp.status_code,
        )

    page = parse_login_page(resp.text)
    form = build_login_form(username, password, page)
    resp = await session.post(login_url, data=form)

    if resp.status_code == 302:
        await session.get(_require_location(resp))
        session._is_login = True
        logger.info("Logged in to SSO")
        return LoginResult.SUCCESS
    if resp.status_code == 401:
        logger.info("SSO rejected the login credentials")
        return LoginResult.INCORRECT_LOGIN_CREDENTIALS
    raise ProtocolError(
        f"status code {resp.status_code} is got (302 expected) when sending login post",
        status_code=resp.status_code,
    )


async def access_service(session: Session, service_url: str) -> httpx.Response:
    """Redeem the SSO login for a service ticket and land on the service.

    Args:
        session: Logged-in session.
        service_url: CAS service URL of the target site.

    Returns:
        The response of the service's ticket landing URL.

    Raises:
        NotLoginError: If the session has not logged in, or the gateway no
            longer recognizes the login.
        ProtocolError: If the redirect has no ``Location``.
    """
    if not session.is_login:
        raise NotLoginError()

    resp = await session.get(session.endpoints.sso_login_url, params={"service": service_url})
    if resp.status_code != 302:
        raise NotLoginError(f"SSO answered {resp.status_code} for a service ticket, login again")

    return await session.get(_require_location(resp))
