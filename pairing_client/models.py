"""Client-side records persisted between runs."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as sent by the server (``Z`` suffix allowed)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class PairingRegistration:
    device_id: str
    code: str
    code_expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "code": self.code,
            "expiresAt": format_timestamp(self.code_expires_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PairingRegistration":
        return cls(
            device_id=data["deviceId"],
            code=data["code"],
            code_expires_at=parse_timestamp(data["expiresAt"]),
        )


@dataclass(frozen=True)
class DeviceToken:
    token: str
    expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "expiresAt": format_timestamp(self.expires_at)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceToken":
        return cls(token=data["token"], expires_at=parse_timestamp(data["expiresAt"]))

    def __repr__(self) -> str:
        return f"DeviceToken(token='***', expires_at={self.expires_at!r})"


__all__ = ["DeviceToken", "PairingRegistration", "format_timestamp", "parse_timestamp"]
