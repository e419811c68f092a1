"""Tests for the bridge coordinator (poll loop, fair-use gate, fan-out)."""

from __future__ import annotations

import asyncio

import pytest
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import UpdateFailed

from custom_components.oilfox.api import (
    AuthError,
    CommunicationError,
    NotFoundError,
    RateLimitError,
)
from custom_components.oilfox.const import (
    STATUS_CANNOT_CONNECT,
    STATUS_INVALID_AUTH,
    STATUS_ONLINE,
    STATUS_RATE_LIMITED,
    STATUS_UNKNOWN_USER,
)

from .conftest import HWID_A, HWID_B, RecordingListener, device_item, devices


def _hour_passes(coordinator) -> None:
    coordinator._last_unscheduled_refresh -= 61 * 60


# ---------------------------------------------------------------------------
# Fair-use gate
# ---------------------------------------------------------------------------


async def test_unscheduled_refresh_right_after_start_is_dropped(coordinator, fake_client):
    assert await coordinator.async_handle_refresh_command() is False

    fake_client.async_get_devices.assert_not_awaited()


async def test_unscheduled_refreshes_within_an_hour_poll_once(coordinator, fake_client):
    _hour_passes(coordinator)

    assert await coordinator.async_handle_refresh_command() is True
    assert await coordinator.async_handle_refresh_command() is False

    assert fake_client.async_get_devices.await_count == 1


async def test_unscheduled_refresh_allowed_again_after_an_hour(coordinator, fake_client):
    _hour_passes(coordinator)
    await coordinator.async_handle_refresh_command()
    _hour_passes(coordinator)

    assert await coordinator.async_handle_refresh_command() is True
    assert fake_client.async_get_devices.await_count == 2


async def test_targeted_refresh_bypasses_gate(coordinator, fake_client):
    assert await coordinator.async_handle_refresh_command() is False

    assert await coordinator.async_handle_refresh_command(HWID_A) is True
    assert await coordinator.async_handle_refresh_command(HWID_A) is True
    assert fake_client.async_get_devices.await_count == 2


async def test_targeted_refresh_does_not_consume_allowance(coordinator, fake_client):
    _hour_passes(coordinator)
    await coordinator.async_handle_refresh_command(HWID_A)

    assert await coordinator.async_handle_refresh_command() is True


# ---------------------------------------------------------------------------
# Poll cycle
# ---------------------------------------------------------------------------


async def test_poll_dispatches_full_list_to_every_listener(coordinator, fake_client):
    polled = devices(device_item(HWID_A), device_item(HWID_B))
    fake_client.async_get_devices.return_value = polled
    listener_a = RecordingListener(HWID_A)
    listener_b = RecordingListener(HWID_B)
    coordinator.register_listener(listener_a)
    coordinator.register_listener(listener_b)

    result = await coordinator._async_update_data()

    assert result == polled
    assert listener_a.refreshes == [polled]
    assert listener_b.refreshes == [polled]
    fake_client.async_ensure_authenticated.assert_awaited_once()
    assert coordinator.status.online
    assert coordinator.status.reason == STATUS_ONLINE


async def test_new_device_announced_once_per_listener(coordinator, fake_client):
    fake_client.async_get_devices.return_value = devices(
        device_item(HWID_A), device_item(HWID_B)
    )
    discovery = RecordingListener()
    listener_a = RecordingListener(HWID_A)
    coordinator.register_listener(discovery)
    coordinator.register_listener(listener_a)

    await coordinator._async_update_data()

    assert discovery.added == [("bridge-1", HWID_B)]
    assert listener_a.added == [("bridge-1", HWID_B)]


async def test_duplicate_hwid_in_response_announced_once(coordinator, fake_client):
    fake_client.async_get_devices.return_value = devices(
        device_item(HWID_B), device_item(HWID_B)
    )
    discovery = RecordingListener()
    coordinator.register_listener(discovery)

    await coordinator.async_get_all_devices()

    assert discovery.added == [("bridge-1", HWID_B)]


async def test_listener_registered_while_added_receives_same_refresh(coordinator, fake_client):
    polled = devices(device_item(HWID_A))
    fake_client.async_get_devices.return_value = polled
    created: list[RecordingListener] = []

    class Discovery(RecordingListener):
        def on_added(self, bridge_id: str, hwid: str) -> None:
            handler = RecordingListener(hwid)
            created.append(handler)
            coordinator.register_listener(handler)

    coordinator.register_listener(Discovery())

    await coordinator._async_update_data()

    assert len(created) == 1
    assert created[0].refreshes == [polled]


async def test_unregistered_listener_is_not_notified(coordinator, fake_client):
    listener = RecordingListener(HWID_A)
    coordinator.register_listener(listener)
    assert coordinator.unregister_listener(listener)

    await coordinator._async_update_data()

    assert listener.refreshes == []


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (AuthError("password invalid"), STATUS_INVALID_AUTH),
        (NotFoundError("user not valid"), STATUS_UNKNOWN_USER),
    ],
)
async def test_login_rejected_starts_reauth(coordinator, fake_client, error, reason):
    fake_client.async_ensure_authenticated.side_effect = error
    listener = RecordingListener(HWID_A)
    coordinator.register_listener(listener)

    with pytest.raises(ConfigEntryAuthFailed):
        await coordinator._async_update_data()

    assert not coordinator.status.online
    assert coordinator.status.reason == reason
    fake_client.async_get_devices.assert_not_awaited()
    assert listener.refreshes == []


@pytest.mark.parametrize(
    ("error", "reason"),
    [
        (RateLimitError("too many requests"), STATUS_RATE_LIMITED),
        (CommunicationError("timed out"), STATUS_CANNOT_CONNECT),
    ],
)
async def test_login_failure_is_update_failed(coordinator, fake_client, error, reason):
    fake_client.async_ensure_authenticated.side_effect = error

    with pytest.raises(UpdateFailed):
        await coordinator._async_update_data()

    assert coordinator.status.reason == reason
    assert coordinator.status.message == str(error)


async def test_device_fetch_failure_is_update_failed(coordinator, fake_client):
    fake_client.async_get_devices.side_effect = CommunicationError("HTTP 500", 500)

    with pytest.raises(UpdateFailed):
        await coordinator._async_update_data()

    assert not coordinator.status.online
    assert coordinator.status.reason == STATUS_CANNOT_CONNECT


async def test_stale_token_on_device_fetch_is_update_failed(coordinator, fake_client):
    fake_client.async_get_devices.side_effect = AuthError("unauthorized")

    with pytest.raises(UpdateFailed):
        await coordinator._async_update_data()


async def test_failed_refresh_command_does_not_raise(coordinator, fake_client):
    fake_client.async_get_devices.side_effect = CommunicationError("HTTP 500", 500)

    assert await coordinator.async_handle_refresh_command(HWID_A) is True
    assert not coordinator.last_update_success


async def test_recovers_after_failure(coordinator, fake_client):
    fake_client.async_ensure_authenticated.side_effect = [
        CommunicationError("timed out"),
        None,
    ]

    with pytest.raises(UpdateFailed):
        await coordinator._async_update_data()
    await coordinator._async_update_data()

    assert coordinator.status.online
    assert coordinator.status.message is None


# ---------------------------------------------------------------------------
# Single flight
# ---------------------------------------------------------------------------


async def test_poll_cycles_never_overlap(coordinator, fake_client):
    in_flight = 0
    max_in_flight = 0

    async def slow_get_devices():
        nonlocal in_flight, max_in_flight
        in_flight += 1
        max_in_flight = max(max_in_flight, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return []

    fake_client.async_get_devices.side_effect = slow_get_devices

    await asyncio.gather(*(coordinator._async_update_data() for _ in range(3)))

    assert fake_client.async_get_devices.await_count == 3
    assert max_in_flight == 1
