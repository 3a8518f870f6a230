"""Device management schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class DeviceResponse(BaseModel):
    deviceId: str
    deviceName: str
    connectedAt: str
    lastUsed: Optional[str]
    expiresAt: str
    isActive: bool


class DeviceListResponse(BaseModel):
    devices: list[DeviceResponse]
    totalDevices: int
    activeDevices: int


class DeviceRenameRequest(BaseModel):
    deviceName: str = Field(min_length=1, max_length=100)
