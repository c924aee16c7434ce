"""Shared fixtures for the bridge tests."""

import re
from typing import Any

import httpx
import pytest

from yolink_bridge.auth import TokenCache
from yolink_bridge.settings import Settings
from yolink_bridge.yolink_client import YoLinkClient

API_URL = "https://api.yosmart.com/open/yolink/v2/api"
TOKEN_URL = re.compile(r"^https://api\.yosmart\.com/open/yolink/token")


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def envelope(data: Any = None, code: str = "000000", desc: str = "Success") -> dict:
    return {"code": code, "time": 1700000000000, "msgid": 1, "desc": desc, "data": data}


def device(device_id: str, token: str = "dev-token", **extra: Any) -> dict:
    return {
        "deviceId": device_id,
        "deviceUDID": f"udid-{device_id}",
        "name": f"Sensor {device_id}",
        "token": token,
        "type": "THSensor",
        "parentDeviceId": None,
        "modelName": "YS8003-UC",
        "serviceZone": "us_west_1",
        **extra,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        YOLINK_CLIENT_ID="client-id",
        YOLINK_CLIENT_SECRET="client-secret",
        TELEMETRY_ENABLED=False,
        MQTT_RECONNECT_DELAY=0,
        STATIC_DIR="/nonexistent-static-dir",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def http():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def tokens(settings: Settings, http: httpx.AsyncClient, clock: FakeClock) -> TokenCache:
    return TokenCache(settings, http, clock=clock)


@pytest.fixture
def client(settings: Settings, tokens: TokenCache, http: httpx.AsyncClient) -> YoLinkClient:
    return YoLinkClient(settings, tokens, http)
