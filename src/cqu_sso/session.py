"""Session holding the cookie store, login state and service credentials.

The session talks to an ``httpx`` transport directly. The transport neither
follows redirects nor stores cookies: every redirect hop is chased by the
login and grant flows, and cookies are attached and absorbed here.
"""

import json
import logging
from http.cookiejar import Cookie
from pathlib import Path
from typing import Any, Callable

import httpx

from .access_info import AccessInfos
from .config import Endpoints, Service, SessionConfig
from .exceptions import NotAccessError, TransportError

logger = logging.getLogger(__name__)

# Default session storage location
DEFAULT_SESSION_FILE = Path.home() / ".config" / "cqu-sso" / "session.json"


def _restore_cookie(data: dict[str, Any]) -> Cookie:
    """Rebuild a stored cookie with its scope, secure flag and expiry."""
    domain = data.get("domain", "")
    expires = data.get("expires")
    return Cookie(
        version=0,
        name=data["name"],
        value=data["value"],
        port=None,
        port_specified=False,
        domain=domain,
        domain_specified=not data.get("host_only", False),
        domain_initial_dot=domain.startswith("."),
        path=data.get("path", "/"),
        path_specified=True,
        secure=bool(data.get("secure", False)),
        expires=int(expires) if expires is not None else None,
        discard=expires is None,
        comment=None,
        comment_url=None,
        rest={},
    )


class Session:
    """Cookie-carrying session used by every SSO and service call.

    Handles returned by :meth:`fork` share the transport and the cookie
    store. Nothing is locked: concurrent logins or grants on handles of the
    same session may interleave cookie updates, so keep one writer per
    session or serialize the calls yourself.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize a session.

        Args:
            config: Session configuration. If None, defaults are used.
            transport: HTTP transport to send requests through. If None, an
                ``httpx.AsyncHTTPTransport`` is built from ``config``.
        """
        self.config = config or SessionConfig()
        self._transport = transport or httpx.AsyncHTTPTransport(
            verify=self.config.verify_ssl,
            proxy=self.config.proxy,
        )
        self.cookies = httpx.Cookies()
        self._is_login = False
        self._access_infos = AccessInfos()

    @property
    def endpoints(self) -> Endpoints:
        return self.config.endpoints

    @property
    def is_login(self) -> bool:
        """Whether the session has logged in through the SSO gateway."""
        return self._is_login

    @property
    def access_infos(self) -> AccessInfos:
        return self._access_infos

    @access_infos.setter
    def access_infos(self, infos: AccessInfos) -> None:
        self._access_infos = infos

    def fork(self) -> "Session":
        """Return a new handle sharing this session's transport and cookies.

        Login state and service credentials are copied, not shared.
        """
        other = Session(self.config, self._transport)
        other.cookies = self.cookies
        other._is_login = self._is_login
        other._access_infos = self._access_infos.copy()
        return other

    def build_request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        data: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Build a request carrying the default headers and timeout."""
        request = httpx.Request(
            method,
            url,
            params=params,
            data=data,
            headers={**self.config.default_headers, **(headers or {})},
        )
        request.extensions["timeout"] = httpx.Timeout(self.config.timeout).as_dict()
        return request

    async def execute(self, request: httpx.Request) -> httpx.Response:
        """Send a request with the stored cookies and absorb ``Set-Cookie``.

        A ``Cookie`` header already present on the request is left alone.
        Cookies from the response are scoped to the URL that produced it;
        since redirects are never followed here, that is the request URL.

        Raises:
            TransportError: If the request fails at the network level.
        """
        self.cookies.set_cookie_header(request)
        # Logs and errors get the URL without its query
        url = str(request.url).split("?", 1)[0]
        try:
            response = await self._transport.handle_async_request(request)
            response.request = request
            try:
                await response.aread()
            except BaseException:
                await response.aclose()
                raise
        except httpx.RequestError as e:
            raise TransportError(f"{request.method} {url} failed: {e}") from e

        logger.debug(f"{request.method} {url} -> {response.status_code}")
        self.cookies.extract_cookies(response)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.execute(self.build_request("GET", url, **kwargs))

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.execute(self.build_request("POST", url, **kwargs))

    def save(self, path: Path = DEFAULT_SESSION_FILE) -> None:
        """Save cookies, login state and credentials to file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "cookies": [
                {
                    "name": c.name,
                    "value": c.value,
                    "domain": c.domain,
                    "path": c.path,
                    "secure": c.secure,
                    "expires": c.expires,
                    "host_only": not c.domain_specified,
                }
                for c in self.cookies.jar
            ],
            "is_login": self._is_login,
            "access_infos": self._access_infos.to_dict(),
        }
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False))

    @classmethod
    def load(
        cls,
        path: Path = DEFAULT_SESSION_FILE,
        config: SessionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "Session | None":
        """Load a saved session from file if it exists and is valid."""
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
            cookies = httpx.Cookies()
            for cookie in data.get("cookies", []):
                cookies.jar.set_cookie(_restore_cookie(cookie))
            infos = AccessInfos.from_dict(data.get("access_infos", {}))
            is_login = bool(data.get("is_login", False))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt session file {path}: {e}")
            return None

        session = cls(config, transport)
        session.cookies = cookies
        session._is_login = is_login
        session._access_infos = infos
        return session

    @staticmethod
    def clear_saved(path: Path = DEFAULT_SESSION_FILE) -> None:
        """Delete saved session."""
        if path.exists():
            path.unlink()

    async def aclose(self) -> None:
        """Close the transport. Forked handles share it and close with it."""
        await self._transport.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()


def redirect_location(response: httpx.Response) -> str | None:
    """Return the absolute ``Location`` of a response, if it has one."""
    location = response.headers.get("location")
    if not location:
        return None
    return str(response.url.join(location))


async def guarded_execute(
    session: Session,
    service: Service,
    build_request: Callable[[Session], httpx.Request],
) -> httpx.Response:
    """Execute a request that needs a service credential.

    The stored credential for ``service`` is attached before sending. A 401
    means the credential went stale; the caller must run the access grant
    again, nothing is retried here.

    Args:
        session: Session holding the credential.
        service: Service the request targets.
        build_request: Called with the session to build the request.

    Returns:
        The response.

    Raises:
        NotAccessError: If no credential is stored, or the service answers 401.
    """
    info = session.access_infos.get(service)
    if info is None:
        raise NotAccessError(f"No access to {service.value}, run its access grant first")

    request = build_request(session)
    # Store cookies go on first so a cookie credential is added alongside them
    session.cookies.set_cookie_header(request)
    info.authorize(request)
    response = await session.execute(request)

    if response.status_code == 401:
        raise NotAccessError(f"Access to {service.value} was rejected, grant it again")
    return response
