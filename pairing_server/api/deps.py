"""Common API dependencies: service wiring, caller resolution, source checks."""

from datetime import datetime
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlmodel import Session

from pairing_server.database import get_session
from pairing_server.services.auth_resolver import (
    SOURCE_SESSION,
    AuthenticatedPrincipal,
    AuthResolver,
    CookieSessionResolver,
)
from pairing_server.services.pairing_service import PairingService
from pairing_server.services.registration_store import SqlRegistrationStore
from pairing_server.services.token_issuer import TokenIssuer
from pairing_server.services.token_store import SqlTokenStore
from pairing_server.services.user_directory import UserDirectory
from pairing_server.utils.security import utcnow


def get_clock() -> Callable[[], datetime]:
    """Time source for the services. Tests override this to move time."""
    return utcnow


def get_token_issuer(
    session: Session = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TokenIssuer:
    return TokenIssuer(SqlTokenStore(session), clock=clock)


def get_pairing_service(
    session: Session = Depends(get_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> PairingService:
    return PairingService(SqlRegistrationStore(session), issuer, clock=clock)


def get_user_directory(session: Session = Depends(get_session)) -> UserDirectory:
    return UserDirectory(session)


def get_auth_resolver(
    issuer: TokenIssuer = Depends(get_token_issuer),
    directory: UserDirectory = Depends(get_user_directory),
) -> AuthResolver:
    return AuthResolver(issuer, directory, CookieSessionResolver())


def get_current_principal(
    request: Request,
    resolver: AuthResolver = Depends(get_auth_resolver),
) -> AuthenticatedPrincipal:
    """Resolve the caller from a bearer device token or a session cookie."""
    principal = resolver.resolve(request)
    if not principal:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_session_principal(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
) -> AuthenticatedPrincipal:
    """Require a signed-in browser user; device tokens can't link other devices."""
    if principal.source != SOURCE_SESSION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "message": "Browser session required"},
        )
    return principal
