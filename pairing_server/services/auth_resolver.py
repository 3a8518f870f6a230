"""Resolve the caller of an inbound request.

A caller is either a paired device presenting a bearer token or a user
signed in to the web surface with a session cookie. Both produce the same
``AuthenticatedPrincipal`` so route handlers don't care which one it was.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

import jwt
from fastapi import Request

from pairing_server.config import settings
from pairing_server.services.token_issuer import TokenIssuer
from pairing_server.services.user_directory import UserDirectory
from pairing_server.utils.security import decode_session_token

logger = logging.getLogger(__name__)

SOURCE_DEVICE_TOKEN = "device-token"
SOURCE_SESSION = "session"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    user_id: str
    user_email: str
    source: str  # 'device-token' | 'session'
    device_id: str | None = None
    device_name: str | None = None


@dataclass(frozen=True)
class SessionIdentity:
    subject: str
    email: str


class SessionResolver(Protocol):
    def resolve(self, request: Request) -> SessionIdentity | None: ...


class CookieSessionResolver:
    """Reads the web surface's signed session JWT from its cookie."""

    def __init__(self, cookie_name: str | None = None):
        self._cookie_name = cookie_name or settings.session_cookie_name

    def resolve(self, request: Request) -> SessionIdentity | None:
        raw = request.cookies.get(self._cookie_name)
        if not raw:
            return None
        try:
            payload = decode_session_token(raw)
        except jwt.PyJWTError:
            return None
        if payload.get("type") != "session" or not payload.get("sub"):
            return None
        return SessionIdentity(subject=payload["sub"], email=payload.get("email", ""))


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


class AuthResolver:
    def __init__(
        self,
        issuer: TokenIssuer,
        directory: UserDirectory,
        sessions: SessionResolver,
    ):
        self._issuer = issuer
        self._directory = directory
        self._sessions = sessions

    def resolve(self, request: Request) -> AuthenticatedPrincipal | None:
        token = bearer_token(request)
        if token:
            principal = self._from_device_token(token)
            if principal:
                return principal

        identity = self._sessions.resolve(request)
        if identity:
            user = self._directory.ensure_user(identity.subject, identity.email)
            return AuthenticatedPrincipal(
                user_id=user.id,
                user_email=user.email,
                source=SOURCE_SESSION,
            )
        return None

    def _from_device_token(self, token: str) -> AuthenticatedPrincipal | None:
        validated = self._issuer.validate_and_touch(token)
        if not validated:
            return None

        # Token records carry the canonical user id; confirm it still maps to a user
        user = self._directory.get(validated.user_id)
        if not user:
            logger.warning("Device %s token references unknown user %s", validated.device_id, validated.user_id)
            return None

        return AuthenticatedPrincipal(
            user_id=user.id,
            user_email=user.email,
            source=SOURCE_DEVICE_TOKEN,
            device_id=validated.device_id,
            device_name=validated.device_name,
        )
