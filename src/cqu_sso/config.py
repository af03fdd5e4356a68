"""Configuration handling for the CQU SSO client."""

import os
from dataclasses import dataclass, field
from enum import Enum


class Service(str, Enum):
    """Downstream services a session can be granted access to."""

    MYCQU = "mycqu"
    CARD = "card"


@dataclass(frozen=True)
class Endpoints:
    """Fixed URLs used by the login and access grant flows.

    Every URL is derived from a handful of roots so a test double or a
    mirror can repoint a whole site at once.
    """

    sso_root: str = "https://sso.cqu.edu.cn"
    mycqu_root: str = "https://my.cqu.edu.cn"
    card_root: str = "http://card.cqu.edu.cn"
    card_ias_root: str = "http://card.cqu.edu.cn:7280"
    card_blade_root: str = "http://card.cqu.edu.cn:8080"

    # mycqu OAuth client, as registered by the enrollment frontend
    mycqu_client_id: str = "enroll-prod"
    mycqu_client_secret: str = "app-a-1234"

    @property
    def sso_login_url(self) -> str:
        return f"{self.sso_root}/login"

    @property
    def sso_logout_url(self) -> str:
        return f"{self.sso_root}/logout"

    @property
    def mycqu_service_url(self) -> str:
        return f"{self.mycqu_root}/authserver/authentication/cas"

    @property
    def mycqu_token_index_url(self) -> str:
        return f"{self.mycqu_root}/enroll/token-index"

    @property
    def mycqu_token_url(self) -> str:
        return f"{self.mycqu_root}/authserver/oauth/token"

    @property
    def mycqu_authorize_url(self) -> str:
        return (
            f"{self.mycqu_root}/authserver/oauth/authorize"
            f"?client_id={self.mycqu_client_id}&response_type=code&scope=all&state="
            f"&redirect_uri={self.mycqu_token_index_url}"
        )

    @property
    def card_service_url(self) -> str:
        return f"{self.card_ias_root}/ias/prelogin?sysid=FWDT"

    @property
    def card_hall_ticket_url(self) -> str:
        return f"{self.card_root}/cassyno/index"

    @property
    def card_page_url(self) -> str:
        return f"{self.card_root}/Page/Page"

    @property
    def card_page_ticket_post_form_url(self) -> str:
        return f"{self.card_blade_root}/blade-auth/token/thirdToToken/fwdt"

    @property
    def card_blade_auth_url(self) -> str:
        return f"{self.card_blade_root}/blade-auth/token/fwdt"


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


@dataclass
class SessionConfig:
    """Configuration for a :class:`~cqu_sso.session.Session`.

    Configuration can be loaded from:
    1. Environment variables (CQU_SSO_TIMEOUT, CQU_SSO_VERIFY_SSL, CQU_SSO_PROXY)
    2. Explicit parameters

    No proxy is used unless one is configured explicitly.
    """

    timeout: float = 30.0
    verify_ssl: bool = True
    proxy: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    endpoints: Endpoints = field(default_factory=Endpoints)

    @property
    def default_headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Load configuration from environment variables.

        Environment variables:
            CQU_SSO_TIMEOUT: Request timeout in seconds
            CQU_SSO_VERIFY_SSL: Set to "false" to disable SSL verification
            CQU_SSO_PROXY: Proxy URL (e.g., http://127.0.0.1:8080)

        Returns:
            SessionConfig instance
        """
        return cls(
            timeout=float(os.environ.get("CQU_SSO_TIMEOUT", "30")),
            verify_ssl=os.environ.get("CQU_SSO_VERIFY_SSL", "").lower() != "false",
            proxy=os.environ.get("CQU_SSO_PROXY") or None,
        )


@dataclass
class Credentials:
    """SSO login credentials."""

    username: str
    password: str

    @classmethod
    def from_env(cls) -> "Credentials":
        """Load credentials from environment variables."""
        username = os.environ.get("CQU_AUTH")
        password = os.environ.get("CQU_PASSWORD")

        if not username or not password:
            raise ValueError("CQU_AUTH and CQU_PASSWORD must be set in environment")

        return cls(username=username, password=password)
