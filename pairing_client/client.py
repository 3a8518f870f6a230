"""High-level DeviceLink client: pairing, authorized requests, sign-out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from pairing_client.api import DeviceApiClient
from pairing_client.clock import CancellationToken, Clock, SystemClock
from pairing_client.config import ClientSettings, get_client_settings
from pairing_client.errors import TransientNetworkError
from pairing_client.events import AuthEvents
from pairing_client.http import RetryConfig
from pairing_client.identity import default_client_signal, fingerprint, get_or_create_install_id
from pairing_client.models import PairingRegistration
from pairing_client.poller import ExchangePoller, PollerConfig, PollState
from pairing_client.registrar import DeviceRegistrar
from pairing_client.storage import DEVICE_TOKEN_KEY, JsonFileStorage, Storage
from pairing_client.token_cache import TokenCache
from pairing_client.wrapper import AuthorizedClient

logger = logging.getLogger(__name__)


def build_sign_in_url(web_base_url: str, code: str) -> str:
    """URL of the web page where the signed-in user enters ``code``."""
    query = urlencode({"source": "extension", "code": code})
    return f"{web_base_url.rstrip('/')}/?{query}"


@dataclass
class PairingAttempt:
    registration: PairingRegistration
    sign_in_url: str
    poller: ExchangePoller
    task: asyncio.Task

    @property
    def state(self) -> PollState:
        return self.poller.state

    def cancel(self) -> None:
        self.poller.cancel()

    async def wait(self) -> PollState:
        return await self.task


class DeviceLinkClient:
    def __init__(
        self,
        settings: ClientSettings,
        *,
        http: httpx.AsyncClient,
        storage: Storage,
        clock: Clock | None = None,
        events: AuthEvents | None = None,
    ) -> None:
        self.settings = settings
        self._http = http
        self._storage = storage
        self._clock = clock or SystemClock()
        self.api = DeviceApiClient(
            http,
            retry_config=RetryConfig(
                attempts=settings.retry_attempts,
                backoff_seconds=settings.retry_backoff_seconds,
            ),
            clock=self._clock,
        )
        self.events = events or AuthEvents(signed_in=storage.get(DEVICE_TOKEN_KEY) is not None)
        self.registrar = DeviceRegistrar(self.api, storage, self._clock)
        self.tokens = TokenCache(
            storage,
            self.api,
            self._clock,
            self.events,
            refresh_threshold_seconds=settings.refresh_threshold_seconds,
        )
        self._authorized = AuthorizedClient(self.api, self.tokens)
        self._attempt: PairingAttempt | None = None

    @classmethod
    def create(
        cls,
        settings: ClientSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> DeviceLinkClient:
        """Wire a client from settings: file storage, system clock, httpx client."""
        settings = settings or get_client_settings()
        http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )
        return cls(settings, http=http, storage=JsonFileStorage(settings.storage_path))

    @property
    def is_signed_in(self) -> bool:
        return self.tokens.current() is not None

    @property
    def current_attempt(self) -> PairingAttempt | None:
        return self._attempt

    def device_fingerprint(self) -> str:
        return fingerprint(get_or_create_install_id(self._storage), default_client_signal())

    def _cancel_attempt(self) -> None:
        if self._attempt and not self._attempt.task.done():
            logger.info("Cancelling pairing attempt for device %s", self._attempt.registration.device_id)
            self._attempt.cancel()
        self._attempt = None

    async def start_pairing(self) -> PairingAttempt:
        """Register a new device and start polling for the user's link."""
        self._cancel_attempt()
        registration = await self.registrar.register(self.device_fingerprint())

        poller = ExchangePoller(
            self.api,
            self.tokens,
            self._clock,
            PollerConfig.from_settings(self.settings),
            cancel=CancellationToken(),
        )
        task = asyncio.create_task(self._run_poller(poller, registration))
        self._attempt = PairingAttempt(
            registration=registration,
            sign_in_url=build_sign_in_url(self.settings.web_base_url, registration.code),
            poller=poller,
            task=task,
        )
        return self._attempt

    async def _run_poller(self, poller: ExchangePoller, registration: PairingRegistration) -> PollState:
        state = await poller.run(registration)
        if state in (PollState.LINKED, PollState.CODE_EXPIRED):
            # The code can't be used again either way
            self.registrar.clear()
        return state

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return await self._authorized.request(method, path, **kwargs)

    async def sign_out(self) -> None:
        """Forget the device token and any pending registration."""
        self._cancel_attempt()
        token = self.tokens.current()
        if token is not None:
            try:
                await self.api.logout(token.token)
            except TransientNetworkError as exc:
                logger.warning("Server logout failed, clearing local token anyway: %s", exc)
        self.tokens.clear()
        self.registrar.clear()

    async def aclose(self) -> None:
        self._cancel_attempt()
        await self._http.aclose()

    async def __aenter__(self) -> DeviceLinkClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["DeviceLinkClient", "PairingAttempt", "build_sign_in_url"]
