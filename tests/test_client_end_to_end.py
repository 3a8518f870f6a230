"""DeviceLinkClient driving the real API in-process."""

import asyncio

import httpx
import pytest

from conftest import VirtualClock, session_headers
from pairing_client.client import DeviceLinkClient
from pairing_client.config import ClientSettings
from pairing_client.poller import PollState
from pairing_client.storage import MemoryStorage

BASE_URL = "http://testserver"


class GatedClock(VirtualClock):
    """Virtual clock whose sleeps wait for the test to open the gate."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        await self.gate.wait()
        await super().sleep(seconds)


@pytest.fixture
def settings():
    return ClientSettings(
        api_base_url=BASE_URL,
        web_base_url="https://app.example.com",
        polling_interval_ms=1000,
        max_wait_ms=60_000,
    )


@pytest.fixture
def gated_clock():
    return GatedClock()


@pytest.fixture
def device_client(app, settings, gated_clock):
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)
    return DeviceLinkClient(settings, http=http, storage=MemoryStorage(), clock=gated_clock)


async def link_code(app, code: str) -> httpx.Response:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL) as web:
        return await web.post("/api/devices/link", json={"code": code}, headers=session_headers())


@pytest.mark.asyncio
async def test_pair_call_and_sign_out(app, device_client, gated_clock):
    seen = []
    device_client.events.subscribe(seen.append)

    attempt = await device_client.start_pairing()
    assert attempt.sign_in_url == f"https://app.example.com/?source=extension&code={attempt.registration.code}"

    r = await link_code(app, attempt.registration.code)
    assert r.status_code == 200
    gated_clock.gate.set()

    assert await asyncio.wait_for(attempt.wait(), timeout=5) is PollState.LINKED
    assert device_client.is_signed_in
    assert device_client.registrar.current() is None

    r = await device_client.request("GET", "/api/protected/ping")
    assert r.status_code == 200
    assert r.json()["source"] == "device-token"
    assert r.json()["deviceId"] == attempt.registration.device_id

    r = await device_client.request("GET", "/api/user/devices")
    assert r.json()["totalDevices"] == 1

    token = device_client.tokens.current().token
    await device_client.sign_out()

    assert not device_client.is_signed_in
    assert seen == [True, False]
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL) as raw:
        r = await raw.get("/api/protected/ping", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    await device_client.aclose()


@pytest.mark.asyncio
async def test_new_pairing_cancels_previous_attempt(device_client):
    first = await device_client.start_pairing()
    second = await device_client.start_pairing()

    assert await asyncio.wait_for(first.wait(), timeout=5) is PollState.POLLING
    assert device_client.current_attempt is second
    assert second.registration.device_id != first.registration.device_id
    assert not second.task.done()

    second.cancel()
    assert await asyncio.wait_for(second.wait(), timeout=5) is PollState.POLLING
    await device_client.aclose()


@pytest.mark.asyncio
async def test_fingerprint_is_stable_per_install(device_client):
    assert device_client.device_fingerprint() == device_client.device_fingerprint()
    await device_client.aclose()
