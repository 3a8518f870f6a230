"""Install identity and device fingerprint.

The fingerprint lets the server recognise a re-paired install and retire the
tokens it held before. It is never a credential.
"""

import hashlib
import platform
import secrets
import sys

from pairing_client.errors import InvalidInput
from pairing_client.storage import INSTALL_ID_KEY, Storage


def get_or_create_install_id(storage: Storage) -> str:
    """Return the install id, creating and persisting it on first use."""
    existing = storage.get(INSTALL_ID_KEY)
    if isinstance(existing, str) and existing:
        return existing
    install_id = f"inst_{secrets.token_hex(16)}"
    storage.set(INSTALL_ID_KEY, install_id)
    return install_id


def fingerprint(install_id: str, client_signal: str) -> str:
    if not install_id:
        raise InvalidInput("install id must not be empty")
    return hashlib.sha256(f"{install_id}|{client_signal}".encode("utf-8")).hexdigest()


def default_client_signal() -> str:
    """Coarse host attributes: OS family and interpreter major.minor."""
    return f"{platform.system() or 'unknown'}/python{sys.version_info.major}.{sys.version_info.minor}"


__all__ = ["default_client_signal", "fingerprint", "get_or_create_install_id"]
