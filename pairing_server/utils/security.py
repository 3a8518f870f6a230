"""Security utilities: opaque tokens, pairing codes, session JWTs, UTC helpers."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from pairing_server.config import settings

# No 0/O or 1/I so codes survive being read aloud or retyped
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

MIN_TOKEN_LENGTH = 32


# --- Time ---

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands datetimes back naive; treat those as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")


# --- Device Tokens ---

def generate_token() -> str:
    """256 bits of randomness, URL-safe, no embedded structure."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """One-way hash used as the storage key for a device token."""
    return hashlib.sha256(token.encode()).hexdigest()


# --- Pairing Codes ---

def generate_pairing_code(length: int | None = None) -> str:
    length = length or settings.code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def hash_code(code: str) -> str:
    return hashlib.sha256(normalize_code(code).encode()).hexdigest()


def generate_device_id() -> str:
    return f"dev_{secrets.token_hex(16)}"


# --- Browser Session JWTs ---

def create_session_token(subject: str, email: str, expires_in: int = 3600) -> str:
    """Issue a session JWT the way the web surface does. Used by tests and local tooling."""
    expire = utcnow() + timedelta(seconds=expires_in)
    payload = {
        "sub": subject,
        "email": email,
        "exp": expire,
        "type": "session",
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str) -> dict:
    """Decode and validate a session JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.session_secret, algorithms=[settings.session_algorithm])
