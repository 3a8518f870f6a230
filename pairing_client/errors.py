"""Errors raised by the DeviceLink client.

Callers only ever see these; httpx exceptions are wrapped where requests are
sent.
"""


class DeviceLinkError(Exception):
    """Base class for every client-side failure."""


class TransientNetworkError(DeviceLinkError):
    """The server could not be reached or timed out. Retrying may help."""


class ServiceUnavailable(TransientNetworkError):
    """Retries are exhausted, or the server answered with unusable data."""


class ServerError(DeviceLinkError):
    """The server answered with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotLinkedYet(DeviceLinkError):
    """The pairing code hasn't been linked to an account yet."""


class CodeExpired(DeviceLinkError):
    """The pairing code expired before it was exchanged."""


class InvalidInput(DeviceLinkError):
    pass


class AuthenticationError(DeviceLinkError):
    """The device token was rejected or is unusable."""


class TokenInvalid(AuthenticationError):
    pass


class TokenExpired(AuthenticationError):
    pass


class TokenRevoked(AuthenticationError):
    pass


__all__ = [
    "AuthenticationError",
    "CodeExpired",
    "DeviceLinkError",
    "InvalidInput",
    "NotLinkedYet",
    "ServerError",
    "ServiceUnavailable",
    "TokenExpired",
    "TokenInvalid",
    "TokenRevoked",
    "TransientNetworkError",
]
