"""Device pairing & token API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from pairing_server.api.deps import (
    get_current_principal,
    get_pairing_service,
    get_token_issuer,
    require_session_principal,
)
from pairing_server.schemas.auth import (
    ExchangeRequest,
    LinkRequest,
    LinkResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from pairing_server.services.auth_resolver import (
    SOURCE_DEVICE_TOKEN,
    AuthenticatedPrincipal,
    bearer_token,
)
from pairing_server.services.pairing_service import (
    CodeExpired,
    NotLinkedYet,
    PairingError,
    PairingService,
    RegistrationNotFound,
)
from pairing_server.services.token_issuer import TokenIssuer
from pairing_server.utils.security import to_iso

router = APIRouter(prefix="/devices", tags=["pairing"])

_PAIRING_STATUS = {
    RegistrationNotFound: status.HTTP_404_NOT_FOUND,
    NotLinkedYet: status.HTTP_425_TOO_EARLY,
    CodeExpired: status.HTTP_410_GONE,
}


def _pairing_http_error(e: PairingError) -> HTTPException:
    return HTTPException(
        status_code=_PAIRING_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST),
        detail={"error": e.error_code, "message": str(e)},
    )


@router.post("/register", response_model=RegisterResponse)
def register(
    request: RegisterRequest | None = None,
    pairing: PairingService = Depends(get_pairing_service),
):
    """Create a pending registration. The code is shown to the user for linking."""
    fingerprint = request.device_fingerprint if request else None
    registration, code = pairing.register(fingerprint)
    return RegisterResponse(
        deviceId=registration.device_id,
        code=code,
        expiresAt=to_iso(registration.expires_at),
    )


@router.post("/exchange", response_model=TokenResponse)
def exchange(
    request: ExchangeRequest,
    pairing: PairingService = Depends(get_pairing_service),
):
    """Trade device id + code for a device token once the user has linked it."""
    try:
        issued = pairing.exchange(request.deviceId, request.code)
    except PairingError as e:
        raise _pairing_http_error(e)
    return TokenResponse(token=issued.token, expiresAt=to_iso(issued.expires_at))


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    request_obj: Request,
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Rotate the bearer device token."""
    issued = issuer.refresh(bearer_token(request_obj))
    if not issued:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_token", "message": "Invalid or expired token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return TokenResponse(token=issued.token, expiresAt=to_iso(issued.expires_at))


@router.post("/link", response_model=LinkResponse)
def link(
    request: LinkRequest,
    principal: AuthenticatedPrincipal = Depends(require_session_principal),
    pairing: PairingService = Depends(get_pairing_service),
):
    """Bind a pending code to the signed-in user (web surface)."""
    try:
        registration = pairing.link(
            request.code,
            user_id=principal.user_id,
            user_email=principal.user_email,
            device_name=request.deviceName,
        )
    except PairingError as e:
        raise _pairing_http_error(e)
    return LinkResponse(ok=True, deviceId=registration.device_id)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Logout: a device caller revokes its own tokens. Sessions end client-side."""
    if principal.source == SOURCE_DEVICE_TOKEN and principal.device_id:
        issuer.revoke(principal.user_id, principal.device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
