"""
Custom integration to integrate OilFox tank sensors with Home Assistant.

This file handles:
- Creating the API client and the bridge coordinator
- Registering the discovery listener that creates device handlers
- Forwarding setup/unload to platforms (sensor, binary_sensor)
- Removing devices from the UI and reloading on option changes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed, ConfigEntryNotReady
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import OilFoxClient
from .const import (
    CONF_ADDRESS,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_REFRESH,
    DEFAULT_ADDRESS,
    DEFAULT_REFRESH_HOURS,
    DOMAIN,
    PLATFORMS,
)
from .coordinator import OilFoxBridgeCoordinator
from .discovery import OilFoxDiscovery

# The logger name becomes "custom_components.oilfox"
_LOGGER: logging.Logger = logging.getLogger(__package__)


@dataclass
class OilFoxData:
    """Everything stored in hass.data[DOMAIN][entry_id]."""

    coordinator: OilFoxBridgeCoordinator
    discovery: OilFoxDiscovery


# --------------------------------------------------------------------------------------
# async_setup_entry
# --------------------------------------------------------------------------------------
async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """
    Called when a config entry is created or reloaded.

    The first refresh discovers every device of the account, so the
    platforms find their device handlers ready when they are set up.
    """
    hass.data.setdefault(DOMAIN, {})

    email: str = entry.data[CONF_EMAIL]
    password: str = entry.data[CONF_PASSWORD]
    address: str = entry.data.get(CONF_ADDRESS, DEFAULT_ADDRESS)

    # Options override the value chosen during the config flow
    refresh_hours: int = entry.options.get(
        CONF_REFRESH,
        entry.data.get(CONF_REFRESH, DEFAULT_REFRESH_HOURS),
    )

    _LOGGER.debug(
        "Setting up OilFox for user %s (refresh every %d hours)",
        email,
        refresh_hours,
    )

    client = OilFoxClient(async_get_clientsession(hass), email, password, address)
    coordinator = OilFoxBridgeCoordinator(hass, entry, client, refresh_hours)

    discovery = OilFoxDiscovery(hass, coordinator)
    coordinator.register_listener(discovery)

    # If this fails:
    # - ConfigEntryAuthFailed → triggers reauth UI
    # - ConfigEntryNotReady → HA retries setup automatically later
    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryAuthFailed:
        discovery.dispose()
        raise
    except Exception as err:  # noqa: BLE001
        discovery.dispose()
        raise ConfigEntryNotReady(str(err)) from err

    hass.data[DOMAIN][entry.entry_id] = OilFoxData(coordinator, discovery)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    return True


# --------------------------------------------------------------------------------------
# async_unload_entry
# --------------------------------------------------------------------------------------
async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload platforms, cancel every device's follow-up poll and drop the bridge."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        data: OilFoxData | None = hass.data[DOMAIN].pop(entry.entry_id, None)
        if data is not None:
            data.discovery.dispose()
            await data.coordinator.async_shutdown()

    return unload_ok


# --------------------------------------------------------------------------------------
# async_remove_config_entry_device
# --------------------------------------------------------------------------------------
async def async_remove_config_entry_device(
    hass: HomeAssistant, entry: ConfigEntry, device_entry: dr.DeviceEntry
) -> bool:
    """
    Allow deleting a tank device from the UI once the API stopped reporting it.

    A device the API still lists would be rediscovered on the next poll,
    so it cannot be removed.
    """
    data: OilFoxData = hass.data[DOMAIN][entry.entry_id]
    reported = {device.hwid for device in data.coordinator.data or []}

    for domain, identifier in device_entry.identifiers:
        if domain != DOMAIN:
            continue
        # The account device goes away with the config entry only
        if identifier == entry.entry_id or identifier in reported:
            return False
        data.discovery.async_remove(identifier)

    return True


# --------------------------------------------------------------------------------------
# async_reload_entry
# --------------------------------------------------------------------------------------
async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Called when integration options change."""
    await hass.config_entries.async_reload(entry.entry_id)
