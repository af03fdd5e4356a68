"""CQU single sign-on client.

Logs in through the CQU SSO gateway and obtains per-service access for
my.cqu.edu.cn (bearer token) and the campus card site (cookies plus a
lazily fetched ``synjones-auth`` token). Sessions can be persisted to
minimize re-authentication.
"""

from .access_info import AccessInfos, CardAccessInfo, MyCQUAccessInfo
from .card import access_card, card_request, ensure_synjones_auth
from .config import Credentials, Endpoints, Service, SessionConfig
from .encrypt import encrypt_password
from .exceptions import (
    AccessError,
    CQUError,
    EncryptError,
    LogoutError,
    NotAccessError,
    NotLoginError,
    PageParseError,
    ProtocolError,
    TransportError,
)
from .mycqu import access_mycqu, mycqu_request
from .session import Session, guarded_execute
from .sso import LoginResult, access_service, login, logout

__all__ = [
    "Session",
    "SessionConfig",
    "Endpoints",
    "Credentials",
    "Service",
    "AccessInfos",
    "MyCQUAccessInfo",
    "CardAccessInfo",
    "LoginResult",
    "login",
    "logout",
    "access_service",
    "access_mycqu",
    "mycqu_request",
    "access_card",
    "ensure_synjones_auth",
    "card_request",
    "guarded_execute",
    "encrypt_password",
    "CQUError",
    "NotLoginError",
    "NotAccessError",
    "EncryptError",
    "ProtocolError",
    "PageParseError",
    "TransportError",
    "LogoutError",
    "AccessError",
]
