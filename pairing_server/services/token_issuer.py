"""Device token issuance, validation and lifecycle.

Tokens are opaque random strings. Only their SHA-256 hash is persisted; the
plaintext leaves this module exactly once, in the ``IssuedToken`` returned by
``issue`` or ``refresh``.

Every read or write that names a device is scoped to the caller's user id,
so a principal can never see or change another principal's devices.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from pairing_server.config import settings
from pairing_server.models.device import TokenRecord
from pairing_server.services.token_store import TokenStore
from pairing_server.utils.security import (
    MIN_TOKEN_LENGTH,
    as_utc,
    generate_token,
    hash_token,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    device_id: str


@dataclass(frozen=True)
class TokenPrincipal:
    user_id: str
    user_email: str
    device_id: str
    device_name: str


@dataclass(frozen=True)
class DeviceSummary:
    device_id: str
    device_name: str
    issued_at: datetime
    expires_at: datetime
    last_used_at: datetime | None
    is_active: bool


class TokenIssuer:
    """Issues, validates, refreshes and revokes device tokens through a TokenStore."""

    def __init__(
        self,
        store: TokenStore,
        *,
        token_ttl: timedelta | None = None,
        refresh_overlap: timedelta | None = None,
        refresh_grace: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._token_ttl = token_ttl or timedelta(seconds=settings.token_ttl_seconds)
        self._refresh_overlap = refresh_overlap or timedelta(seconds=settings.refresh_overlap_seconds)
        self._refresh_grace = refresh_grace or timedelta(seconds=settings.refresh_grace_seconds)
        self._clock = clock

    @staticmethod
    def generate_token() -> str:
        return generate_token()

    def store_token(
        self,
        token_value: str,
        *,
        device_id: str,
        user_id: str,
        user_email: str,
        device_name: str,
        expires_at: datetime,
        fingerprint: str | None = None,
    ) -> None:
        """Persist the hash of ``token_value`` with its metadata. Nothing is returned."""
        if len(token_value) < MIN_TOKEN_LENGTH:
            raise ValueError("Token must be at least 32 characters long")
        now = self._clock()
        self._store.insert(
            TokenRecord(
                device_id=device_id,
                user_id=user_id,
                user_email=user_email,
                device_name=device_name,
                device_fingerprint=fingerprint,
                token_hash=hash_token(token_value),
                issued_at=now,
                expires_at=expires_at,
                last_used_at=now,
            )
        )

    def issue(
        self,
        *,
        device_id: str,
        user_id: str,
        user_email: str,
        device_name: str,
        fingerprint: str | None = None,
    ) -> IssuedToken:
        """Create a new token for a freshly linked device."""
        if fingerprint:
            # Same install re-paired: the older device entries are superseded
            replaced = self._store.revoke_fingerprint(user_id, fingerprint, self._clock())
            if replaced:
                logger.info("Superseded %d token(s) for user %s with same fingerprint", replaced, user_id)

        token = self.generate_token()
        expires_at = self._clock() + self._token_ttl
        self.store_token(
            token,
            device_id=device_id,
            user_id=user_id,
            user_email=user_email,
            device_name=device_name,
            expires_at=expires_at,
            fingerprint=fingerprint,
        )
        logger.info("Issued token for device %s (user %s)", device_id, user_id)
        return IssuedToken(token=token, expires_at=expires_at, device_id=device_id)

    def validate_and_touch(self, token_value: str | None) -> TokenPrincipal | None:
        """Return the token's principal, or None for any kind of invalid token."""
        if not token_value or len(token_value) < MIN_TOKEN_LENGTH:
            return None

        token_hash = hash_token(token_value)
        record = self._store.get_by_hash(token_hash)
        now = self._clock()
        if not record or record.revoked or now >= as_utc(record.expires_at):
            return None

        self._store.update_last_used(token_hash, now)
        return TokenPrincipal(
            user_id=record.user_id,
            user_email=record.user_email,
            device_id=record.device_id,
            device_name=record.device_name,
        )

    def refresh(self, token_value: str | None) -> IssuedToken | None:
        """Trade a current (or just-expired) token for a new one.

        The old record is marked superseded and can never be refreshed again.
        It still validates until the overlap window closes so in-flight
        requests using it succeed.
        """
        if not token_value or len(token_value) < MIN_TOKEN_LENGTH:
            return None

        old_hash = hash_token(token_value)
        record = self._store.get_by_hash(old_hash)
        now = self._clock()
        if not record or record.revoked or record.superseded_at:
            return None
        old_expiry = as_utc(record.expires_at)
        if now >= old_expiry + self._refresh_grace:
            return None

        token = self.generate_token()
        expires_at = now + self._token_ttl
        self.store_token(
            token,
            device_id=record.device_id,
            user_id=record.user_id,
            user_email=record.user_email,
            device_name=record.device_name,
            expires_at=expires_at,
            fingerprint=record.device_fingerprint,
        )
        self._store.supersede(old_hash, min(old_expiry, now + self._refresh_overlap), now)
        logger.info("Rotated token for device %s (user %s)", record.device_id, record.user_id)
        return IssuedToken(token=token, expires_at=expires_at, device_id=record.device_id)

    def revoke(self, user_id: str, device_id: str) -> bool:
        """Revoke every token of a device. Idempotent; False if the device isn't the user's."""
        matched = self._store.revoke(user_id, device_id, self._clock())
        if matched:
            logger.info("Revoked device %s for user %s", device_id, user_id)
        return matched > 0

    def list_devices(self, user_id: str) -> list[DeviceSummary]:
        """One entry per non-revoked device, described by its newest token."""
        now = self._clock()
        latest: dict[str, TokenRecord] = {}
        for record in self._store.list_for_user(user_id):
            if record.revoked:
                continue
            current = latest.get(record.device_id)
            if current is None or as_utc(record.issued_at) > as_utc(current.issued_at):
                latest[record.device_id] = record

        devices = [
            DeviceSummary(
                device_id=r.device_id,
                device_name=r.device_name,
                issued_at=as_utc(r.issued_at),
                expires_at=as_utc(r.expires_at),
                last_used_at=as_utc(r.last_used_at) if r.last_used_at else None,
                is_active=as_utc(r.expires_at) > now,
            )
            for r in latest.values()
        ]
        devices.sort(key=lambda d: d.last_used_at or d.issued_at, reverse=True)
        return devices

    def rename_device(self, user_id: str, device_id: str, name: str) -> DeviceSummary | None:
        if not self._store.rename(user_id, device_id, name):
            return None
        for device in self.list_devices(user_id):
            if device.device_id == device_id:
                return device
        return None

    def sweep_expired(self) -> int:
        removed = self._store.delete_expired(self._clock())
        if removed:
            logger.info("Removed %d expired device token(s)", removed)
        return removed
