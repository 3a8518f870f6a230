"""DeviceLink Server Configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "DeviceLink Server"
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "devicelink" / "data"

    # Database
    db_path: Path = Path.home() / "devicelink" / "data" / "devicelink.db"

    # Device tokens
    token_ttl_seconds: int = 86400  # 24 hours
    refresh_overlap_seconds: int = 60  # old token stays valid this long after a refresh
    refresh_grace_seconds: int = 300  # expired tokens may still be refreshed within this window

    # Pairing
    code_length: int = 6
    code_ttl_seconds: int = 300  # 5 minutes
    registration_retention_seconds: int = 3600  # expired codes still answer "expired" this long

    # Maintenance
    sweep_interval_seconds: int = 3600  # 0 disables the background sweep

    # Browser session (issued by the web surface)
    session_cookie_name: str = "session"
    session_secret: str = ""
    session_algorithm: str = "HS256"

    model_config = {"env_prefix": "DEVICELINK_"}

    @property
    def session_key_file(self) -> Path:
        return self.data_dir / "session.key"

    def prepare(self) -> None:
        """Create the data directories and settle the session signing key.

        An explicit ``DEVICELINK_SESSION_SECRET`` wins and is never written to
        disk. Otherwise the key is read from ``session.key``, generated on the
        first start, so browser sessions survive restarts.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if self.session_secret:
            return

        key_file = self.session_key_file
        if key_file.exists():
            self.session_secret = key_file.read_text().strip()
        if not self.session_secret:
            self.session_secret = secrets.token_urlsafe(32)
            key_file.write_text(self.session_secret)
            key_file.chmod(0o600)


settings = Settings()
settings.prepare()
