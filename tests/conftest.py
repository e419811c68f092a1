"""Shared fixtures for the OilFox tests."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.oilfox.api import OilFoxSession
from custom_components.oilfox.const import (
    CONF_ADDRESS,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_REFRESH,
    DEFAULT_ADDRESS,
    DOMAIN,
)
from custom_components.oilfox.coordinator import OilFoxBridgeCoordinator
from custom_components.oilfox.models import OilFoxDevice, parse_devices

HWID_A = "OFX-A-0001"
HWID_B = "OFX-B-0002"


def metering(value: datetime) -> str:
    """Format a datetime the way the API reports metering times."""
    return value.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def device_item(hwid: str, **overrides: Any) -> dict[str, Any]:
    """One entry of the ``items`` list of GET /customer-api/v1/device."""
    item: dict[str, Any] = {
        "hwid": hwid,
        "currentMeteringAt": "2026-10-19T06:00:00.000Z",
        "nextMeteringAt": "2099-10-19T18:00:00.000Z",
        "daysReach": 120,
        "batteryLevel": "FULL",
        "fillLevelPercent": 64,
        "fillLevelQuantity": 500,
        "quantityUnit": "L",
    }
    item.update(overrides)
    return item


def devices(*items: dict[str, Any]) -> list[OilFoxDevice]:
    return parse_devices(items)


class FakeClient:
    """Stands in for OilFoxClient in bridge tests."""

    def __init__(self) -> None:
        self.auth = OilFoxSession()
        self.async_ensure_authenticated = AsyncMock()
        self.async_get_devices = AsyncMock(return_value=[])


class RecordingListener:
    """Listener that records every call it receives."""

    def __init__(self, hwid: str | None = None) -> None:
        self.hwid = hwid
        self.added: list[tuple[str, str]] = []
        self.removed: list[tuple[str, str]] = []
        self.refreshes: list[list[OilFoxDevice]] = []

    def on_added(self, bridge_id: str, hwid: str) -> None:
        self.added.append((bridge_id, hwid))

    def on_removed(self, bridge_id: str, hwid: str) -> None:
        self.removed.append((bridge_id, hwid))

    def on_refresh(self, devices: list[OilFoxDevice]) -> None:
        self.refreshes.append(list(devices))


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations):
    yield


@pytest.fixture
def config_entry(hass) -> MockConfigEntry:
    entry = MockConfigEntry(
        domain=DOMAIN,
        entry_id="bridge-1",
        unique_id="user@example.com",
        data={
            CONF_EMAIL: "user@example.com",
            CONF_PASSWORD: "secret",
            CONF_ADDRESS: DEFAULT_ADDRESS,
            CONF_REFRESH: 6,
        },
    )
    entry.add_to_hass(hass)
    return entry


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def coordinator(hass, config_entry, fake_client) -> OilFoxBridgeCoordinator:
    return OilFoxBridgeCoordinator(hass, config_entry, fake_client, 6)
