"""Requests carrying the device token, with one refresh-and-retry on rejection."""

import logging
from typing import Any

import httpx

from pairing_client.api import DeviceApiClient
from pairing_client.errors import TokenInvalid
from pairing_client.token_cache import TokenCache

logger = logging.getLogger(__name__)

REJECTED = (401, 403)


class AuthorizedClient:
    def __init__(self, api: DeviceApiClient, tokens: TokenCache) -> None:
        self._api = api
        self._tokens = tokens

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        token = await self._tokens.get_valid_token()
        response = await self._api.send(method, path, token, **kwargs)
        if response.status_code not in REJECTED:
            return response

        logger.info("%s %s rejected with %s, refreshing token", method, path, response.status_code)
        refreshed = await self._tokens.refresh()
        response = await self._api.send(method, path, refreshed.token, **kwargs)
        if response.status_code in REJECTED:
            self._tokens.clear()
            raise TokenInvalid(f"{method} {path} rejected after token refresh")
        return response


__all__ = ["AuthorizedClient"]
