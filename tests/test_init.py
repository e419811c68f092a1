"""Tests for setting up, unloading and cleaning up an OilFox config entry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from homeassistant.config_entries import ConfigEntryState
from homeassistant.const import STATE_OFF, STATE_ON, STATE_UNAVAILABLE
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers import entity_registry as er

from custom_components.oilfox import async_remove_config_entry_device
from custom_components.oilfox.api import AuthError, CommunicationError
from custom_components.oilfox.const import DOMAIN
from custom_components.oilfox.diagnostics import async_get_config_entry_diagnostics

from .conftest import HWID_A, HWID_B, device_item, devices

TRACK = "custom_components.oilfox.device.async_track_point_in_utc_time"


@pytest.fixture(autouse=True)
def no_follow_up_timers():
    with patch(TRACK, return_value=MagicMock()) as track:
        yield track


@pytest.fixture
def patched_client(fake_client):
    with patch("custom_components.oilfox.OilFoxClient", return_value=fake_client):
        yield fake_client


async def _setup(hass, entry) -> None:
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()


def _state(hass, platform: str, unique_id: str):
    entity_id = er.async_get(hass).async_get_entity_id(platform, DOMAIN, unique_id)
    assert entity_id is not None, unique_id
    return hass.states.get(entity_id)


async def test_setup_creates_entities(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(
        device_item(HWID_A, batteryLevel="WARNING")
    )

    await _setup(hass, config_entry)

    assert config_entry.state is ConfigEntryState.LOADED
    assert _state(hass, "sensor", f"{HWID_A}_fill_level_percent").state == "64"
    assert _state(hass, "sensor", f"{HWID_A}_fill_level_quantity").attributes[
        "unit_of_measurement"
    ] == "L"
    assert _state(hass, "sensor", f"{HWID_A}_battery_level").state == "warning"
    assert _state(hass, "binary_sensor", f"{HWID_A}_battery_low").state == STATE_ON
    assert _state(hass, "sensor", f"{config_entry.entry_id}_device_count").state == "1"
    assert _state(hass, "sensor", f"{config_entry.entry_id}_api_status").state == "online"
    assert (
        _state(hass, "binary_sensor", f"{config_entry.entry_id}_cloud_connection").state
        == STATE_ON
    )

    assert await hass.config_entries.async_unload(config_entry.entry_id)
    assert config_entry.state is ConfigEntryState.NOT_LOADED
    assert DOMAIN not in hass.data or config_entry.entry_id not in hass.data[DOMAIN]


async def test_device_discovered_on_later_poll(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(device_item(HWID_A))
    await _setup(hass, config_entry)
    coordinator = hass.data[DOMAIN][config_entry.entry_id].coordinator

    patched_client.async_get_devices.return_value = devices(
        device_item(HWID_A), device_item(HWID_B, quantityUnit="Kg", fillLevelQuantity=800)
    )
    await coordinator.async_refresh()
    await hass.async_block_till_done()

    quantity = _state(hass, "sensor", f"{HWID_B}_fill_level_quantity")
    assert quantity.state == "800"
    assert quantity.attributes["unit_of_measurement"] == "kg"
    assert _state(hass, "sensor", f"{config_entry.entry_id}_device_count").state == "2"

    assert await hass.config_entries.async_unload(config_entry.entry_id)


async def test_poll_failure_marks_devices_unavailable(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(device_item(HWID_A))
    await _setup(hass, config_entry)
    coordinator = hass.data[DOMAIN][config_entry.entry_id].coordinator

    patched_client.async_get_devices.side_effect = CommunicationError("HTTP 500", 500)
    await coordinator.async_refresh()
    await hass.async_block_till_done()

    assert _state(hass, "sensor", f"{HWID_A}_fill_level_percent").state == STATE_UNAVAILABLE
    assert _state(hass, "sensor", f"{config_entry.entry_id}_api_status").state == "cannot_connect"
    assert (
        _state(hass, "binary_sensor", f"{config_entry.entry_id}_cloud_connection").state
        == STATE_OFF
    )

    assert await hass.config_entries.async_unload(config_entry.entry_id)


async def test_setup_retries_when_cloud_unreachable(hass, config_entry, patched_client):
    patched_client.async_ensure_authenticated.side_effect = CommunicationError("timed out")

    await hass.config_entries.async_setup(config_entry.entry_id)
    await hass.async_block_till_done()

    assert config_entry.state is ConfigEntryState.SETUP_RETRY


async def test_setup_with_rejected_password_starts_reauth(hass, config_entry, patched_client):
    patched_client.async_ensure_authenticated.side_effect = AuthError("password invalid")

    await hass.config_entries.async_setup(config_entry.entry_id)
    await hass.async_block_till_done()

    assert config_entry.state is ConfigEntryState.SETUP_ERROR
    flows = hass.config_entries.flow.async_progress()
    assert [flow["context"]["source"] for flow in flows] == ["reauth"]


async def test_remove_device_only_when_no_longer_reported(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(device_item(HWID_A))
    await _setup(hass, config_entry)
    data = hass.data[DOMAIN][config_entry.entry_id]
    device = dr.async_get(hass).async_get_device(identifiers={(DOMAIN, HWID_A)})
    assert device is not None

    assert not await async_remove_config_entry_device(hass, config_entry, device)
    assert HWID_A in data.discovery.devices

    patched_client.async_get_devices.return_value = []
    await data.coordinator.async_refresh()

    assert await async_remove_config_entry_device(hass, config_entry, device)
    assert HWID_A not in data.discovery.devices
    assert data.coordinator.listeners.known_hwids() == set()

    assert await hass.config_entries.async_unload(config_entry.entry_id)


async def test_diagnostics_are_redacted(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(device_item(HWID_A))
    patched_client.auth.update("access-1", "refresh-1")
    await _setup(hass, config_entry)

    diagnostics = await async_get_config_entry_diagnostics(hass, config_entry)

    assert diagnostics["entry"]["email"] == "**REDACTED**"
    assert diagnostics["entry"]["password"] == "**REDACTED**"
    assert diagnostics["status"]["online"] is True
    assert diagnostics["session"]["logged_in"] is True
    assert diagnostics["devices"] == {HWID_A: {"available": True, "follow_up_pending": True}}
    assert [item["hwid"] for item in diagnostics["items"]] == [HWID_A]
    assert "access-1" not in str(diagnostics)

    assert await hass.config_entries.async_unload(config_entry.entry_id)


async def test_no_extra_poll_right_after_setup(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = devices(device_item(HWID_A))
    await _setup(hass, config_entry)
    coordinator = hass.data[DOMAIN][config_entry.entry_id].coordinator

    assert await coordinator.async_handle_refresh_command() is False
    await hass.async_block_till_done()

    assert patched_client.async_get_devices.await_count == 1

    assert await hass.config_entries.async_unload(config_entry.entry_id)


async def test_account_device_cannot_be_removed(hass, config_entry, patched_client):
    patched_client.async_get_devices.return_value = []
    await _setup(hass, config_entry)
    account = dr.async_get(hass).async_get_device(identifiers={(DOMAIN, config_entry.entry_id)})
    assert account is not None

    assert not await async_remove_config_entry_device(hass, config_entry, account)

    assert await hass.config_entries.async_unload(config_entry.entry_id)
