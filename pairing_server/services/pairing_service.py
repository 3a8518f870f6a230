"""Device pairing business logic.

Flow:
    register  -> the device gets a device id and a short pairing code
    link      -> the signed-in user enters the code on the web surface
    exchange  -> the device trades device id + code for a device token

Codes are stored hashed and are single use.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from pairing_server.config import settings
from pairing_server.models.device import DeviceRegistration
from pairing_server.services.registration_store import RegistrationStore
from pairing_server.services.token_issuer import IssuedToken, TokenIssuer
from pairing_server.utils.security import (
    as_utc,
    generate_device_id,
    generate_pairing_code,
    hash_code,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_NAME = "Browser Extension"


class PairingError(Exception):
    error_code = "pairing_error"


class RegistrationNotFound(PairingError):
    error_code = "not_linked"


class NotLinkedYet(PairingError):
    error_code = "not_ready"


class CodeExpired(PairingError):
    error_code = "code_expired"


class PairingService:
    def __init__(
        self,
        registrations: RegistrationStore,
        issuer: TokenIssuer,
        *,
        code_ttl: timedelta | None = None,
        retention: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._registrations = registrations
        self._issuer = issuer
        self._code_ttl = code_ttl or timedelta(seconds=settings.code_ttl_seconds)
        self._retention = (
            retention if retention is not None
            else timedelta(seconds=settings.registration_retention_seconds)
        )
        self._clock = clock

    def register(self, fingerprint: str | None = None) -> tuple[DeviceRegistration, str]:
        """Create a registration. Returns it together with the plaintext code."""
        # Skip codes that collide with a still-pending registration
        while True:
            code = generate_pairing_code()
            code_hash = hash_code(code)
            if self._registrations.find_by_code_hash(code_hash) is None:
                break

        registration = DeviceRegistration(
            device_id=generate_device_id(),
            code_hash=code_hash,
            device_fingerprint=fingerprint,
            expires_at=self._clock() + self._code_ttl,
            created_at=self._clock(),
        )
        self._registrations.insert(registration)
        logger.info("Registered device %s", registration.device_id)
        return registration, code

    def link(
        self,
        code: str,
        *,
        user_id: str,
        user_email: str,
        device_name: str | None = None,
    ) -> DeviceRegistration:
        """Bind a pending registration to a signed-in user."""
        registration = self._registrations.find_by_code_hash(hash_code(code))
        if not registration:
            raise RegistrationNotFound("Invalid pairing code")
        if self._clock() >= as_utc(registration.expires_at):
            raise CodeExpired("Pairing code has expired")
        if registration.linked_at and registration.user_id != user_id:
            # Don't reveal that someone else already claimed this code
            raise RegistrationNotFound("Invalid pairing code")

        self._registrations.link(
            registration.id, user_id, user_email, device_name, self._clock()
        )
        logger.info("Linked device %s to user %s", registration.device_id, user_id)
        return registration

    def exchange(self, device_id: str, code: str) -> IssuedToken:
        """Trade device id + code for a token once the code has been linked."""
        registration = self._registrations.find_by_code_hash(hash_code(code))
        if not registration or registration.device_id != device_id:
            raise RegistrationNotFound("Device not linked")
        if self._clock() >= as_utc(registration.expires_at):
            raise CodeExpired("Pairing code has expired")
        if not registration.linked_at or not registration.user_id:
            raise NotLinkedYet("Device not linked yet")

        if not self._registrations.consume(registration.id, self._clock()):
            raise RegistrationNotFound("Device not linked")

        try:
            return self._issuer.issue(
                device_id=registration.device_id,
                user_id=registration.user_id,
                user_email=registration.user_email or "",
                device_name=registration.device_name or DEFAULT_DEVICE_NAME,
                fingerprint=registration.device_fingerprint,
            )
        except Exception:
            # The code stays usable so the device can retry the exchange
            logger.exception("Token issue failed for device %s", registration.device_id)
            self._registrations.release(registration.id)
            raise

    def sweep_expired(self) -> int:
        """Drop registrations that expired more than the retention window ago.

        Until then an exchange against them still answers CodeExpired rather
        than looking like an unknown code.
        """
        removed = self._registrations.delete_expired(self._clock() - self._retention)
        if removed:
            logger.info("Removed %d expired registration(s)", removed)
        return removed
