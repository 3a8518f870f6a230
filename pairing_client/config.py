"""DeviceLink client configuration.

Resolved once per process through ``get_client_settings()``; every component
receives the same frozen instance instead of reading flags on its own.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    # Endpoints
    api_base_url: str = "http://127.0.0.1:8000"
    web_base_url: str = "http://127.0.0.1:3000"

    # Local state
    storage_path: Path = Path.home() / ".devicelink" / "client.json"

    # Exchange polling
    polling_interval_ms: int = 2500
    max_wait_ms: int = 300_000  # 5 minutes
    failure_budget: int = 3
    jitter_ratio: float = 0.1

    # Token cache
    refresh_threshold_seconds: int = 5

    # HTTP
    request_timeout_seconds: float = 10
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0

    model_config = {"env_prefix": "DEVICELINK_CLIENT_", "frozen": True}


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()


__all__ = ["ClientSettings", "get_client_settings"]
