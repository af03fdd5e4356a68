"""Custom exceptions for the CQU SSO client."""


class CQUError(Exception):
    """Base exception for CQU client errors."""

    pass


class NotLoginError(CQUError):
    """Action requires a prior SSO login."""

    def __init__(self, message: str = "Request before SSO login"):
        super().__init__(message)


class NotAccessError(CQUError):
    """Action requires a prior, still-valid service grant."""

    def __init__(self, message: str = "Request before getting service access"):
        super().__init__(message)


class EncryptError(CQUError):
    """Password could not be encrypted (malformed salt)."""

    pass


class ProtocolError(CQUError):
    """The remote site returned something other than what the flow expects.

    Raised when a page element, header or JSON field is missing, or when an
    unexpected status code comes back. Usually means the site changed.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PageParseError(ProtocolError):
    """A required value was not found in a scraped page."""

    def __init__(self, target: str):
        super().__init__(f'Require info "{target}" but not found')
        self.target = target


class TransportError(CQUError):
    """Network-level failure while talking to a remote site."""

    pass


class LogoutError(CQUError):
    """SSO logout request failed."""

    def __init__(self, message: str = "Logout error"):
        super().__init__(message)


class AccessError(CQUError):
    """A service access grant exchange was rejected."""

    def __init__(self, message: str, service: str = ""):
        super().__init__(message)
        self.service = service
