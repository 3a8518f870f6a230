"""Install identity, fingerprint, storage and settings."""

import re

import pytest
from pydantic import ValidationError

from pairing_client.client import build_sign_in_url
from pairing_client.config import ClientSettings
from pairing_client.errors import InvalidInput
from pairing_client.events import AuthEvents
from pairing_client.identity import default_client_signal, fingerprint, get_or_create_install_id
from pairing_client.storage import INSTALL_ID_KEY, JsonFileStorage, MemoryStorage


def test_install_id_is_created_once():
    storage = MemoryStorage()
    first = get_or_create_install_id(storage)

    assert re.fullmatch(r"inst_[0-9a-f]{32}", first)
    assert get_or_create_install_id(storage) == first
    assert storage.get(INSTALL_ID_KEY) == first


def test_fingerprint_is_deterministic_sha256():
    fp = fingerprint("inst_abc", "Linux/python3.12")

    assert re.fullmatch(r"[0-9a-f]{64}", fp)
    assert fp == fingerprint("inst_abc", "Linux/python3.12")
    assert fp != fingerprint("inst_abd", "Linux/python3.12")
    assert fp != fingerprint("inst_abc", "Darwin/python3.12")


def test_fingerprint_requires_install_id():
    with pytest.raises(InvalidInput):
        fingerprint("", "Linux/python3.12")


def test_default_client_signal_is_coarse():
    assert re.fullmatch(r"[^/]+/python\d+\.\d+", default_client_signal())


def test_json_file_storage_persists_between_instances(tmp_path):
    path = tmp_path / "state" / "client.json"
    storage = JsonFileStorage(path)
    storage.set("device_token_v1", {"token": "t", "expiresAt": "2025-01-01T00:00:00Z"})
    storage.set("install_id_v1", "inst_1")

    reopened = JsonFileStorage(path)
    assert reopened.get("install_id_v1") == "inst_1"
    assert reopened.get("device_token_v1")["token"] == "t"

    reopened.remove("device_token_v1")
    assert JsonFileStorage(path).get("device_token_v1") is None
    assert [p.name for p in path.parent.iterdir()] == ["client.json"]


def test_json_file_storage_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "client.json"
    path.write_text("{not json")
    assert JsonFileStorage(path).get("install_id_v1") is None


def test_client_settings_from_env(monkeypatch):
    monkeypatch.setenv("DEVICELINK_CLIENT_POLLING_INTERVAL_MS", "1000")
    monkeypatch.setenv("DEVICELINK_CLIENT_API_BASE_URL", "https://api.example.com")

    settings = ClientSettings()

    assert settings.polling_interval_ms == 1000
    assert settings.api_base_url == "https://api.example.com"
    assert settings.max_wait_ms == 300_000
    assert settings.refresh_threshold_seconds == 5
    with pytest.raises(ValidationError):
        settings.polling_interval_ms = 5


def test_sign_in_url():
    assert (
        build_sign_in_url("https://app.example.com/", "AB12CD")
        == "https://app.example.com/?source=extension&code=AB12CD"
    )


def test_auth_events_fire_once_per_transition():
    events = AuthEvents()
    seen = []
    unsubscribe = events.subscribe(seen.append)

    events.publish(True)
    events.publish(True)
    events.publish(False)
    unsubscribe()
    events.publish(True)

    assert seen == [True, False]
    assert events.signed_in is True


def test_failing_listener_does_not_block_others():
    events = AuthEvents()
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    events.subscribe(broken)
    events.subscribe(seen.append)
    events.publish(True)

    assert seen == [True]
