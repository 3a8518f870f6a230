"""Device management API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from pairing_server.api.deps import get_current_principal, get_token_issuer
from pairing_server.schemas.devices import (
    DeviceListResponse,
    DeviceRenameRequest,
    DeviceResponse,
)
from pairing_server.services.auth_resolver import AuthenticatedPrincipal
from pairing_server.services.token_issuer import DeviceSummary, TokenIssuer
from pairing_server.utils.security import to_iso

router = APIRouter(prefix="/user/devices", tags=["devices"])


def _device_response(d: DeviceSummary) -> DeviceResponse:
    return DeviceResponse(
        deviceId=d.device_id,
        deviceName=d.device_name,
        connectedAt=to_iso(d.issued_at),
        lastUsed=to_iso(d.last_used_at) if d.last_used_at else None,
        expiresAt=to_iso(d.expires_at),
        isActive=d.is_active,
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": "not_found", "message": "Device not found"},
    )


@router.get("", response_model=DeviceListResponse)
def list_devices(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """List the caller's devices, most recently used first."""
    devices = [_device_response(d) for d in issuer.list_devices(principal.user_id)]
    return DeviceListResponse(
        devices=devices,
        totalDevices=len(devices),
        activeDevices=sum(1 for d in devices if d.isActive),
    )


@router.patch("/{device_id}", response_model=DeviceResponse)
def rename_device(
    device_id: str,
    request: DeviceRenameRequest,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Rename one of the caller's devices."""
    device = issuer.rename_device(principal.user_id, device_id, request.deviceName)
    if not device:
        raise _not_found()
    return _device_response(device)


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_device(
    device_id: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Revoke a device. Its token stops working immediately."""
    if not issuer.revoke(principal.user_id, device_id):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
