"""Device registration and device token models."""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class DeviceRegistration(SQLModel, table=True):
    """A pending pairing: created by register, linked by the web surface, consumed by exchange."""

    __tablename__ = "device_registrations"

    id: str = Field(default_factory=lambda: f"reg_{secrets.token_hex(8)}", primary_key=True)
    device_id: str = Field(index=True)
    code_hash: str = Field(index=True)  # sha256 of the pairing code
    device_fingerprint: Optional[str] = None
    user_id: Optional[str] = Field(default=None, foreign_key="users.id")
    user_email: Optional[str] = None
    device_name: Optional[str] = None
    expires_at: datetime
    linked_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TokenRecord(SQLModel, table=True):
    """Server-side record of an issued device token. Only the hash is stored."""

    __tablename__ = "device_tokens"

    id: str = Field(default_factory=lambda: f"tok_{secrets.token_hex(8)}", primary_key=True)
    device_id: str = Field(index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    user_email: str
    device_name: str
    device_fingerprint: Optional[str] = None
    token_hash: str = Field(unique=True, index=True)
    issued_at: datetime
    expires_at: datetime
    last_used_at: Optional[datetime] = None
    revoked: bool = Field(default=False)
    revoked_at: Optional[datetime] = None
    superseded_at: Optional[datetime] = None  # set when a refresh replaced this token
