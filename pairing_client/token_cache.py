"""Local device token with proactive refresh."""

import logging
from datetime import timedelta

from pairing_client.api import DeviceApiClient
from pairing_client.clock import Clock
from pairing_client.errors import AuthenticationError, TokenExpired, TokenInvalid, TokenRevoked
from pairing_client.events import AuthEvents
from pairing_client.models import DeviceToken
from pairing_client.storage import DEVICE_TOKEN_KEY, Storage

logger = logging.getLogger(__name__)


class TokenCache:
    """Holds the device token and swaps it for a fresh one before it lapses.

    Whether a rejected refresh means "expired" or "revoked" is decided from
    the expiry stored here; the server answers both the same way.
    """

    def __init__(
        self,
        storage: Storage,
        api: DeviceApiClient,
        clock: Clock,
        events: AuthEvents,
        *,
        refresh_threshold_seconds: float = 5,
    ) -> None:
        self._storage = storage
        self._api = api
        self._clock = clock
        self._events = events
        self._threshold = timedelta(seconds=refresh_threshold_seconds)

    def current(self) -> DeviceToken | None:
        data = self._storage.get(DEVICE_TOKEN_KEY)
        if not data:
            return None
        try:
            return DeviceToken.from_dict(data)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding unreadable stored device token")
            self._storage.remove(DEVICE_TOKEN_KEY)
            return None

    def store(self, token: DeviceToken) -> None:
        self._storage.set(DEVICE_TOKEN_KEY, token.to_dict())
        self._events.publish(True)

    def clear(self) -> None:
        self._storage.remove(DEVICE_TOKEN_KEY)
        self._events.publish(False)

    async def get_valid_token(self) -> str:
        token = self.current()
        if token is None:
            raise TokenInvalid("No device token stored")
        if token.expires_at - self._clock.now() > self._threshold:
            return token.token
        return (await self.refresh()).token

    async def refresh(self) -> DeviceToken:
        token = self.current()
        if token is None:
            raise TokenInvalid("No device token stored")

        try:
            refreshed = await self._api.refresh(token.token)
        except AuthenticationError as exc:
            self.clear()
            if self._clock.now() >= token.expires_at:
                logger.info("Device token expired and could not be refreshed")
                raise TokenExpired("Device token expired") from exc
            logger.info("Device token was revoked")
            raise TokenRevoked("Device token was revoked") from exc

        self.store(refreshed)
        logger.info("Device token refreshed, expires %s", refreshed.expires_at.isoformat())
        return refreshed


__all__ = ["TokenCache"]
