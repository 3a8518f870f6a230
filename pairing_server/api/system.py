"""Protected probe endpoint, usable by both device and browser callers."""

from fastapi import APIRouter, Depends

from pairing_server.api.deps import get_current_principal
from pairing_server.schemas.auth import PingResponse
from pairing_server.services.auth_resolver import AuthenticatedPrincipal

router = APIRouter(prefix="/protected", tags=["system"])


@router.get("/ping", response_model=PingResponse)
def protected_ping(principal: AuthenticatedPrincipal = Depends(get_current_principal)):
    """Echo who the caller resolved to and how."""
    return PingResponse(
        ok=True,
        userId=principal.user_id,
        userEmail=principal.user_email,
        deviceId=principal.device_id,
        source=principal.source,
    )
