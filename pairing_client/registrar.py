"""Device registration and the locally remembered pending registration."""

import logging

from pairing_client.api import DeviceApiClient
from pairing_client.clock import Clock
from pairing_client.models import PairingRegistration
from pairing_client.storage import DEVICE_INFO_KEY, Storage

logger = logging.getLogger(__name__)


class DeviceRegistrar:
    def __init__(self, api: DeviceApiClient, storage: Storage, clock: Clock) -> None:
        self._api = api
        self._storage = storage
        self._clock = clock

    def current(self) -> PairingRegistration | None:
        """The stored registration, if any and not yet expired."""
        data = self._storage.get(DEVICE_INFO_KEY)
        if not data:
            return None
        try:
            registration = PairingRegistration.from_dict(data)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable stored registration")
            self.clear()
            return None
        if registration.code_expires_at <= self._clock.now():
            return None
        return registration

    async def register(self, fingerprint: str | None = None) -> PairingRegistration:
        """Register a new device, replacing any stored registration."""
        registration = await self._api.register(fingerprint)
        self._storage.set(DEVICE_INFO_KEY, registration.to_dict())
        return registration

    async def get_or_register(self, fingerprint: str | None = None) -> PairingRegistration:
        return self.current() or await self.register(fingerprint)

    def clear(self) -> None:
        self._storage.remove(DEVICE_INFO_KEY)


__all__ = ["DeviceRegistrar"]
