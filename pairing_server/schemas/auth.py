"""Pairing and token request/response schemas.

Field names follow the wire format used by existing extension builds.
"""

from typing import Optional

from pydantic import BaseModel, Field


# --- Registration ---

class RegisterRequest(BaseModel):
    device_fingerprint: Optional[str] = Field(default=None, pattern=r"^[0-9a-f]{64}$")


class RegisterResponse(BaseModel):
    deviceId: str
    code: str
    expiresAt: str


# --- Exchange / Refresh ---

class ExchangeRequest(BaseModel):
    deviceId: str = Field(min_length=1)
    code: str = Field(min_length=1)


class TokenResponse(BaseModel):
    token: str
    expiresAt: str


# --- Linking (web surface) ---

class LinkRequest(BaseModel):
    code: str = Field(min_length=1)
    deviceName: Optional[str] = Field(default=None, max_length=100)


class LinkResponse(BaseModel):
    ok: bool
    deviceId: str


# --- Protected ---

class PingResponse(BaseModel):
    ok: bool
    userId: str
    userEmail: str
    deviceId: Optional[str]
    source: str
