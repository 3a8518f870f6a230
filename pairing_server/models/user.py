"""User model."""

import secrets
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=lambda: f"usr_{secrets.token_hex(8)}", primary_key=True)
    external_id: str = Field(unique=True, index=True)  # browser-session subject
    email: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
