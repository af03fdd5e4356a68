"""Access grant for the course/grade service (my.cqu.edu.cn).

The service runs an OAuth authorization-code flow behind the SSO ticket:
the authorize endpoint redirects with a ``code``, which the token endpoint
exchanges for a bearer token.
"""

import logging
from typing import Callable

import httpx

from .access_info import MyCQUAccessInfo
from .config import Service
from .exceptions import AccessError
from .parsers import extract_auth_code
from .session import Session, guarded_execute
from .sso import access_service

logger = logging.getLogger(__name__)


async def get_oauth_token(session: Session) -> str:
    """Run the authorize/token exchange and return the access token.

    Raises:
        AccessError: If no code comes back or the token response has no
            ``access_token`` string.
    """
    endpoints = session.endpoints
    resp = await session.get(endpoints.mycqu_authorize_url)

    code = extract_auth_code(resp.headers.get("location", ""))
    if code is None:
        raise AccessError("Get Auth Code Error", service=Service.MYCQU.value)

    token_data = {
        "client_id": endpoints.mycqu_client_id,
        "client_secret": endpoints.mycqu_client_secret,
        "code": code,
        "redirect_uri": endpoints.mycqu_token_index_url,
        "grant_type": "authorization_code",
    }
    resp = await session.post(endpoints.mycqu_token_url, data=token_data)

    try:
        access_token = resp.json().get("access_token")
    except (ValueError, AttributeError):
        access_token = None
    if not isinstance(access_token, str) or not access_token:
        raise AccessError("Get Access Token Error", service=Service.MYCQU.value)
    return access_token


async def access_mycqu(session: Session) -> MyCQUAccessInfo:
    """Grant the session access to my.cqu.edu.cn.

    Returns:
        The stored access info.

    Raises:
        NotLoginError: If the session has not logged in through SSO.
        AccessError: If the OAuth exchange fails.
    """
    await access_service(session, session.endpoints.mycqu_service_url)

    info = MyCQUAccessInfo(auth_header=await get_oauth_token(session))
    session.access_infos.set(info)
    logger.info("Granted access to mycqu")
    return info


async def mycqu_request(
    session: Session,
    build_request: Callable[[Session], httpx.Request],
) -> httpx.Response:
    """Execute a my.cqu.edu.cn API request with the stored bearer token."""
    return await guarded_execute(session, Service.MYCQU, build_request)
