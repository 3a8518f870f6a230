"""HTTP utilities providing retry/backoff semantics."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from pairing_client.errors import ServiceUnavailable, TransientNetworkError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def send(func: Callable[..., Awaitable[httpx.Response]], *args, **kwargs) -> httpx.Response:
    """Call ``func`` once, turning transport failures into TransientNetworkError."""
    try:
        return await func(*args, **kwargs)
    except httpx.TransportError as exc:
        raise TransientNetworkError(f"{type(exc).__name__}: {exc}") from exc


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    sleep: Sleep = asyncio.sleep,
    **kwargs,
) -> httpx.Response:
    """Retry transport failures and 5xx answers with linear backoff.

    Any other response, 4xx included, is returned to the caller as-is. When
    the attempts run out, ServiceUnavailable is raised.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    last_error: str = "no attempts made"

    while attempt < config.attempts:
        try:
            response = await send(func, *args, **kwargs)
        except TransientNetworkError as exc:
            last_error = str(exc)
        else:
            if response.status_code < 500:
                return response
            last_error = f"HTTP {response.status_code}"

        attempt += 1
        if attempt >= config.attempts:
            break
        logger.info("Request failed (%s), retry %d/%d", last_error, attempt, config.attempts - 1)
        await sleep(config.backoff_seconds * attempt)

    raise ServiceUnavailable(f"Service unavailable after {config.attempts} attempt(s): {last_error}")


__all__ = ["RetryConfig", "request_with_retry", "send"]
