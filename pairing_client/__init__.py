"""Client side of DeviceLink device pairing."""

from pairing_client.client import DeviceLinkClient, PairingAttempt, build_sign_in_url
from pairing_client.config import ClientSettings, get_client_settings
from pairing_client.errors import (
    AuthenticationError,
    CodeExpired,
    DeviceLinkError,
    InvalidInput,
    NotLinkedYet,
    ServerError,
    ServiceUnavailable,
    TokenExpired,
    TokenInvalid,
    TokenRevoked,
    TransientNetworkError,
)
from pairing_client.poller import PollState

__all__ = [
    "AuthenticationError",
    "ClientSettings",
    "CodeExpired",
    "DeviceLinkClient",
    "DeviceLinkError",
    "InvalidInput",
    "NotLinkedYet",
    "PairingAttempt",
    "PollState",
    "ServerError",
    "ServiceUnavailable",
    "TokenExpired",
    "TokenInvalid",
    "TokenRevoked",
    "TransientNetworkError",
    "build_sign_in_url",
    "get_client_settings",
]
