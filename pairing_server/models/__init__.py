"""DeviceLink Database Models."""

from pairing_server.models.user import User
from pairing_server.models.device import DeviceRegistration, TokenRecord

__all__ = [
    "User",
    "DeviceRegistration",
    "TokenRecord",
]
