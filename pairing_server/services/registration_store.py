"""Storage backends for pending device registrations."""

from datetime import datetime
from typing import Protocol

from sqlalchemy import update
from sqlmodel import Session, col, select

from pairing_server.models.device import DeviceRegistration
from pairing_server.utils.security import as_utc


class RegistrationStore(Protocol):
    def insert(self, registration: DeviceRegistration) -> None: ...

    def find_by_code_hash(self, code_hash: str) -> DeviceRegistration | None: ...

    def link(
        self,
        registration_id: str,
        user_id: str,
        user_email: str,
        device_name: str | None,
        when: datetime,
    ) -> None: ...

    def consume(self, registration_id: str, when: datetime) -> bool: ...

    def release(self, registration_id: str) -> None: ...

    def delete_expired(self, before: datetime) -> int: ...


class SqlRegistrationStore:
    """RegistrationStore backed by the ``device_registrations`` table."""

    def __init__(self, session: Session):
        self._session = session

    def insert(self, registration: DeviceRegistration) -> None:
        self._session.add(registration)
        self._session.commit()

    def find_by_code_hash(self, code_hash: str) -> DeviceRegistration | None:
        """Return the newest unconsumed registration for a code."""
        return self._session.exec(
            select(DeviceRegistration)
            .where(
                DeviceRegistration.code_hash == code_hash,
                col(DeviceRegistration.consumed_at).is_(None),
            )
            .order_by(col(DeviceRegistration.created_at).desc())
        ).first()

    def link(
        self,
        registration_id: str,
        user_id: str,
        user_email: str,
        device_name: str | None,
        when: datetime,
    ) -> None:
        registration = self._session.get(DeviceRegistration, registration_id)
        if not registration:
            return
        registration.user_id = user_id
        registration.user_email = user_email
        registration.device_name = device_name or registration.device_name
        registration.linked_at = when
        self._session.add(registration)
        self._session.commit()

    def consume(self, registration_id: str, when: datetime) -> bool:
        """Mark consumed only if nobody else did first. Returns True for the winner.

        Left uncommitted: the token insert that follows commits both together.
        """
        statement = (
            update(DeviceRegistration)
            .where(
                col(DeviceRegistration.id) == registration_id,
                col(DeviceRegistration.consumed_at).is_(None),
            )
            .values(consumed_at=when)
        )
        result = self._session.connection().execute(statement)
        return result.rowcount == 1

    def release(self, registration_id: str) -> None:
        """Undo a consume whose token was never issued."""
        self._session.rollback()
        self._session.connection().execute(
            update(DeviceRegistration)
            .where(col(DeviceRegistration.id) == registration_id)
            .values(consumed_at=None)
        )
        self._session.commit()

    def delete_expired(self, before: datetime) -> int:
        expired = self._session.exec(
            select(DeviceRegistration).where(col(DeviceRegistration.expires_at) < before)
        ).all()
        for registration in expired:
            self._session.delete(registration)
        self._session.commit()
        return len(expired)


class MemoryRegistrationStore:
    """In-process RegistrationStore."""

    def __init__(self):
        self._registrations: dict[str, DeviceRegistration] = {}  # id -> registration

    def insert(self, registration: DeviceRegistration) -> None:
        self._registrations[registration.id] = registration

    def find_by_code_hash(self, code_hash: str) -> DeviceRegistration | None:
        matches = [
            r for r in self._registrations.values()
            if r.code_hash == code_hash and r.consumed_at is None
        ]
        if not matches:
            return None
        return max(matches, key=lambda r: r.created_at)

    def link(
        self,
        registration_id: str,
        user_id: str,
        user_email: str,
        device_name: str | None,
        when: datetime,
    ) -> None:
        registration = self._registrations.get(registration_id)
        if not registration:
            return
        registration.user_id = user_id
        registration.user_email = user_email
        registration.device_name = device_name or registration.device_name
        registration.linked_at = when

    def consume(self, registration_id: str, when: datetime) -> bool:
        registration = self._registrations.get(registration_id)
        if not registration or registration.consumed_at is not None:
            return False
        registration.consumed_at = when
        return True

    def release(self, registration_id: str) -> None:
        registration = self._registrations.get(registration_id)
        if registration:
            registration.consumed_at = None

    def delete_expired(self, before: datetime) -> int:
        expired = [k for k, r in self._registrations.items() if as_utc(r.expires_at) < before]
        for key in expired:
            del self._registrations[key]
        return len(expired)
