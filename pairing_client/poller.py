"""Exchange poller: waits for the user to link the pairing code.

States::

    IDLE -> POLLING -> LINKED | CODE_EXPIRED | TIMED_OUT | FAILED

Every wait is clamped to what is left of the maximum wait, so a run ends no
later than ``max_wait`` plus one exchange round trip.
"""

import enum
import logging
import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from pairing_client.api import DeviceApiClient
from pairing_client.clock import CancellationToken, Clock, sleep_unless_cancelled
from pairing_client.config import ClientSettings
from pairing_client.errors import CodeExpired, DeviceLinkError, NotLinkedYet
from pairing_client.models import PairingRegistration
from pairing_client.token_cache import TokenCache

logger = logging.getLogger(__name__)


class PollState(str, enum.Enum):
    IDLE = "idle"
    POLLING = "polling"
    LINKED = "linked"
    CODE_EXPIRED = "code_expired"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self not in (PollState.IDLE, PollState.POLLING)


@dataclass(frozen=True)
class PollerConfig:
    interval_seconds: float = 2.5
    max_wait_seconds: float = 300.0
    failure_budget: int = 3
    jitter_ratio: float = 0.1

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "PollerConfig":
        return cls(
            interval_seconds=settings.polling_interval_ms / 1000,
            max_wait_seconds=settings.max_wait_ms / 1000,
            failure_budget=settings.failure_budget,
            jitter_ratio=settings.jitter_ratio,
        )


class ExchangePoller:
    """Polls ``exchange`` for one registration. A poller runs once."""

    def __init__(
        self,
        api: DeviceApiClient,
        tokens: TokenCache,
        clock: Clock,
        config: PollerConfig,
        *,
        cancel: CancellationToken | None = None,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._api = api
        self._tokens = tokens
        self._clock = clock
        self._config = config
        self._cancel = cancel or CancellationToken()
        self._rng = rng
        self._state = PollState.IDLE
        self.failures = 0
        self.attempts = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel

    def cancel(self) -> None:
        self._cancel.cancel()

    def _interval(self) -> float:
        spread = self._config.jitter_ratio * (2 * self._rng() - 1)
        return self._config.interval_seconds * (1 + spread)

    def _backoff(self) -> float:
        return self._config.interval_seconds * (2 ** self.failures)

    def _finish(self, state: PollState, registration: PairingRegistration) -> PollState:
        self._state = state
        logger.info(
            "Exchange polling for device %s ended: %s after %d attempt(s)",
            registration.device_id,
            state.value,
            self.attempts,
        )
        return state

    async def run(self, registration: PairingRegistration) -> PollState:
        if self._state is not PollState.IDLE:
            raise RuntimeError("ExchangePoller.run() can only be called once")

        started = self._clock.now()
        deadline = started + timedelta(seconds=self._config.max_wait_seconds)
        self._state = PollState.POLLING

        while not self._cancel.cancelled:
            now = self._clock.now()
            if now >= registration.code_expires_at:
                return self._finish(PollState.CODE_EXPIRED, registration)
            if now >= deadline:
                return self._finish(PollState.TIMED_OUT, registration)

            self.attempts += 1
            try:
                token = await self._api.exchange(registration.device_id, registration.code)
            except NotLinkedYet:
                delay = self._interval()
            except CodeExpired:
                return self._finish(PollState.CODE_EXPIRED, registration)
            except DeviceLinkError as exc:
                self.failures += 1
                logger.warning(
                    "Exchange attempt for device %s failed (%d/%d): %s",
                    registration.device_id,
                    self.failures,
                    self._config.failure_budget,
                    exc,
                )
                if self.failures > self._config.failure_budget:
                    return self._finish(PollState.FAILED, registration)
                delay = self._backoff()
            else:
                self._tokens.store(token)
                return self._finish(PollState.LINKED, registration)

            remaining = (deadline - self._clock.now()).total_seconds()
            if remaining > 0:
                if await sleep_unless_cancelled(self._clock, min(delay, remaining), self._cancel):
                    break

        logger.info("Exchange polling for device %s cancelled", registration.device_id)
        return self._state


__all__ = ["ExchangePoller", "PollState", "PollerConfig"]
