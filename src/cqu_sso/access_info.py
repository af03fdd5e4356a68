"""Per-service credentials held by a session.

Each downstream service has its own credential shape. A registry entry
exists only once the matching access grant has completed; a missing entry
means the session is not yet authorized for that service.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Union

import httpx

from .config import Service


@dataclass(frozen=True)
class MyCQUAccessInfo:
    """Bearer token for the course/grade service (my.cqu.edu.cn)."""

    SERVICE: ClassVar[Service] = Service.MYCQU

    auth_header: str

    def authorize(self, request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Bearer {self.auth_header}"

    def to_dict(self) -> dict[str, Any]:
        return {"auth_header": self.auth_header}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MyCQUAccessInfo":
        return cls(auth_header=data["auth_header"])


@dataclass(frozen=True)
class CardAccessInfo:
    """Card service access.

    ``synjones_auth`` is ``None`` until the secondary token used by the
    utility fee endpoints has been fetched; it is cached here afterwards.
    """

    SERVICE: ClassVar[Service] = Service.CARD

    synjones_auth: str | None = None

    def authorize(self, request: httpx.Request) -> None:
        # Without the secondary token the session cookies are the credential
        if not self.synjones_auth:
            return
        cookie = f"synjones-auth={self.synjones_auth}"
        existing = request.headers.get("Cookie")
        request.headers["Cookie"] = f"{existing}; {cookie}" if existing else cookie

    def to_dict(self) -> dict[str, Any]:
        return {"synjones_auth": self.synjones_auth}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CardAccessInfo":
        return cls(synjones_auth=data.get("synjones_auth"))


AccessInfo = Union[MyCQUAccessInfo, CardAccessInfo]

ACCESS_INFO_TYPES: dict[Service, type] = {
    Service.MYCQU: MyCQUAccessInfo,
    Service.CARD: CardAccessInfo,
}


class AccessInfos:
    """Zero-or-one credential per known service."""

    def __init__(self, infos: dict[Service, AccessInfo] | None = None):
        self._infos: dict[Service, AccessInfo] = dict(infos or {})

    def get(self, service: Service) -> AccessInfo | None:
        return self._infos.get(service)

    def set(self, info: AccessInfo) -> None:
        self._infos[info.SERVICE] = info

    def remove(self, service: Service) -> None:
        self._infos.pop(service, None)

    def clear(self) -> None:
        self._infos.clear()

    def is_authorized(self, service: Service) -> bool:
        return service in self._infos

    def services(self) -> list[Service]:
        return list(self._infos)

    def copy(self) -> "AccessInfos":
        return AccessInfos(self._infos)

    def __contains__(self, service: object) -> bool:
        return service in self._infos

    def __len__(self) -> int:
        return len(self._infos)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccessInfos):
            return NotImplemented
        return self._infos == other._infos

    def __repr__(self) -> str:
        return f"AccessInfos({sorted(s.value for s in self._infos)})"

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """Serialize for session persistence."""
        return {service.value: info.to_dict() for service, info in self._infos.items()}

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, Any]]) -> "AccessInfos":
        """Restore from :meth:`to_dict` output, skipping unknown services."""
        infos = cls()
        for key, value in data.items():
            try:
                service = Service(key)
            except ValueError:
                continue
            infos.set(ACCESS_INFO_TYPES[service].from_dict(value))
        return infos
