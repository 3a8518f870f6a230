"""Storage backends for device token records.

The issuer never touches tables directly; it talks to a ``TokenStore``.
``SqlTokenStore`` persists through SQLModel, ``MemoryTokenStore`` keeps
records in a dict and is used by unit tests and local tooling.
"""

from datetime import datetime
from typing import Protocol

from sqlmodel import Session, col, select

from pairing_server.models.device import TokenRecord
from pairing_server.utils.security import as_utc


class TokenStore(Protocol):
    def get_by_hash(self, token_hash: str) -> TokenRecord | None: ...

    def insert(self, record: TokenRecord) -> None: ...

    def update_last_used(self, token_hash: str, when: datetime) -> None: ...

    def supersede(self, token_hash: str, expires_at: datetime, when: datetime) -> None: ...

    def revoke(self, user_id: str, device_id: str, when: datetime) -> int: ...

    def revoke_fingerprint(self, user_id: str, fingerprint: str, when: datetime) -> int: ...

    def list_for_user(self, user_id: str) -> list[TokenRecord]: ...

    def rename(self, user_id: str, device_id: str, name: str) -> int: ...

    def delete_expired(self, before: datetime) -> int: ...


class SqlTokenStore:
    """TokenStore backed by the ``device_tokens`` table."""

    def __init__(self, session: Session):
        self._session = session

    def get_by_hash(self, token_hash: str) -> TokenRecord | None:
        return self._session.exec(
            select(TokenRecord).where(TokenRecord.token_hash == token_hash)
        ).first()

    def insert(self, record: TokenRecord) -> None:
        self._session.add(record)
        self._session.commit()

    def update_last_used(self, token_hash: str, when: datetime) -> None:
        record = self.get_by_hash(token_hash)
        if record:
            record.last_used_at = when
            self._session.add(record)
            self._session.commit()

    def supersede(self, token_hash: str, expires_at: datetime, when: datetime) -> None:
        record = self.get_by_hash(token_hash)
        if record:
            record.expires_at = expires_at
            record.superseded_at = when
            self._session.add(record)
            self._session.commit()

    def revoke(self, user_id: str, device_id: str, when: datetime) -> int:
        records = self._session.exec(
            select(TokenRecord).where(
                TokenRecord.user_id == user_id,
                TokenRecord.device_id == device_id,
            )
        ).all()
        for record in records:
            if not record.revoked:
                record.revoked = True
                record.revoked_at = when
                self._session.add(record)
        self._session.commit()
        return len(records)

    def revoke_fingerprint(self, user_id: str, fingerprint: str, when: datetime) -> int:
        records = self._session.exec(
            select(TokenRecord).where(
                TokenRecord.user_id == user_id,
                TokenRecord.device_fingerprint == fingerprint,
                TokenRecord.revoked == False,  # noqa: E712
            )
        ).all()
        for record in records:
            record.revoked = True
            record.revoked_at = when
            self._session.add(record)
        self._session.commit()
        return len(records)

    def list_for_user(self, user_id: str) -> list[TokenRecord]:
        return list(
            self._session.exec(
                select(TokenRecord)
                .where(TokenRecord.user_id == user_id)
                .order_by(col(TokenRecord.issued_at).desc())
            ).all()
        )

    def rename(self, user_id: str, device_id: str, name: str) -> int:
        records = self._session.exec(
            select(TokenRecord).where(
                TokenRecord.user_id == user_id,
                TokenRecord.device_id == device_id,
                TokenRecord.revoked == False,  # noqa: E712
            )
        ).all()
        for record in records:
            record.device_name = name
            self._session.add(record)
        self._session.commit()
        return len(records)

    def delete_expired(self, before: datetime) -> int:
        expired = self._session.exec(
            select(TokenRecord).where(col(TokenRecord.expires_at) < before)
        ).all()
        for record in expired:
            self._session.delete(record)
        self._session.commit()
        return len(expired)


class MemoryTokenStore:
    """In-process TokenStore. Not shared between processes."""

    def __init__(self):
        self._records: dict[str, TokenRecord] = {}  # token_hash -> record

    def get_by_hash(self, token_hash: str) -> TokenRecord | None:
        return self._records.get(token_hash)

    def insert(self, record: TokenRecord) -> None:
        if record.token_hash in self._records:
            raise ValueError("Token hash collision")
        self._records[record.token_hash] = record

    def update_last_used(self, token_hash: str, when: datetime) -> None:
        record = self._records.get(token_hash)
        if record:
            record.last_used_at = when

    def supersede(self, token_hash: str, expires_at: datetime, when: datetime) -> None:
        record = self._records.get(token_hash)
        if record:
            record.expires_at = expires_at
            record.superseded_at = when

    def revoke(self, user_id: str, device_id: str, when: datetime) -> int:
        matched = [
            r for r in self._records.values()
            if r.user_id == user_id and r.device_id == device_id
        ]
        for record in matched:
            if not record.revoked:
                record.revoked = True
                record.revoked_at = when
        return len(matched)

    def revoke_fingerprint(self, user_id: str, fingerprint: str, when: datetime) -> int:
        matched = [
            r for r in self._records.values()
            if r.user_id == user_id and r.device_fingerprint == fingerprint and not r.revoked
        ]
        for record in matched:
            record.revoked = True
            record.revoked_at = when
        return len(matched)

    def list_for_user(self, user_id: str) -> list[TokenRecord]:
        records = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(records, key=lambda r: as_utc(r.issued_at), reverse=True)

    def rename(self, user_id: str, device_id: str, name: str) -> int:
        matched = [
            r for r in self._records.values()
            if r.user_id == user_id and r.device_id == device_id and not r.revoked
        ]
        for record in matched:
            record.device_name = name
        return len(matched)

    def delete_expired(self, before: datetime) -> int:
        expired = [h for h, r in self._records.items() if as_utc(r.expires_at) < before]
        for token_hash in expired:
            del self._records[token_hash]
        return len(expired)
