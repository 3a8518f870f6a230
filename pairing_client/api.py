"""Thin async client for the DeviceLink pairing endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pairing_client.clock import Clock, SystemClock
from pairing_client.errors import (
    CodeExpired,
    NotLinkedYet,
    ServerError,
    ServiceUnavailable,
    TokenInvalid,
)
from pairing_client.http import RetryConfig, request_with_retry, send
from pairing_client.models import DeviceToken, PairingRegistration

logger = logging.getLogger(__name__)

REGISTER_PATH = "/api/devices/register"
EXCHANGE_PATH = "/api/devices/exchange"
REFRESH_PATH = "/api/devices/refresh"
LOGOUT_PATH = "/api/devices/logout"


def _token_from(response: httpx.Response) -> DeviceToken:
    try:
        return DeviceToken.from_dict(response.json())
    except (ValueError, KeyError, TypeError) as exc:
        raise ServerError("Malformed token response", response.status_code) from exc


class DeviceApiClient:
    """Wraps an ``httpx.AsyncClient`` whose base URL points at the API server."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        retry_config: RetryConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._http = http
        self._retry = retry_config or RetryConfig()
        self._clock = clock or SystemClock()

    async def register(self, fingerprint: str | None = None) -> PairingRegistration:
        """Create a registration on the server. Transient failures are retried."""
        payload: dict[str, Any] = {}
        if fingerprint:
            payload["device_fingerprint"] = fingerprint

        response = await request_with_retry(
            self._http.post,
            REGISTER_PATH,
            json=payload,
            retry_config=self._retry,
            sleep=self._clock.sleep,
        )
        if response.status_code != 200:
            raise ServerError(f"register failed: {response.status_code}", response.status_code)

        try:
            registration = PairingRegistration.from_dict(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise ServiceUnavailable("Malformed registration response") from exc
        if registration.code_expires_at <= self._clock.now():
            raise ServiceUnavailable("Server returned an already expired pairing code")

        logger.info("Registered device %s", registration.device_id)
        return registration

    async def exchange(self, device_id: str, code: str) -> DeviceToken:
        """One exchange attempt. The poller decides whether to try again."""
        response = await send(
            self._http.post, EXCHANGE_PATH, json={"deviceId": device_id, "code": code}
        )
        if response.status_code == 200:
            return _token_from(response)
        if response.status_code in (404, 425):
            raise NotLinkedYet("Device not linked yet")
        if response.status_code == 410:
            raise CodeExpired("Pairing code has expired")
        raise ServerError(f"exchange failed: {response.status_code}", response.status_code)

    async def refresh(self, token: str) -> DeviceToken:
        """Trade ``token`` for a new one. A rejection raises TokenInvalid."""
        response = await send(
            self._http.post, REFRESH_PATH, headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code == 200:
            return _token_from(response)
        if response.status_code in (401, 403):
            raise TokenInvalid("Refresh rejected")
        raise ServerError(f"refresh failed: {response.status_code}", response.status_code)

    async def logout(self, token: str) -> None:
        response = await send(
            self._http.post, LOGOUT_PATH, headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code not in (204, 401):
            logger.warning("Logout returned %s", response.status_code)

    async def send(self, method: str, path: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        return await send(self._http.request, method, path, headers=headers, **kwargs)


__all__ = ["DeviceApiClient"]
