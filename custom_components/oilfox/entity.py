"""
Shared base entities for the OilFox integration.

Both sensor.py and binary_sensor.py import from here to avoid duplication.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, INTEGRATION_NAME, MANUFACTURER, SIGNAL_DEVICE_ADDED
from .coordinator import OilFoxBridgeCoordinator
from .device import OilFoxDeviceHandler


def account_device_info(entry: ConfigEntry) -> Dict[str, Any]:
    """Account-level (bridge) device all tanks hang off."""
    return {
        "identifiers": {(DOMAIN, entry.entry_id)},
        "name": INTEGRATION_NAME,
        "manufacturer": MANUFACTURER,
        "model": "FoxInsights Customer API",
    }


@callback
def async_setup_device_entities(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: Callable[[list[Entity]], None],
    build_entities_for_device: Callable[[OilFoxDeviceHandler], list[Entity]],
) -> None:
    """Add entities for known devices now and for discovered ones later.

    Handlers created during the first refresh already exist; later ones
    arrive through the discovery dispatcher signal.
    """
    data = hass.data[DOMAIN][entry.entry_id]

    entities: list[Entity] = []
    for handler in data.discovery.devices.values():
        entities.extend(build_entities_for_device(handler))
    if entities:
        async_add_entities(entities)

    @callback
    def _device_added(handler: OilFoxDeviceHandler) -> None:
        async_add_entities(build_entities_for_device(handler))

    entry.async_on_unload(
        async_dispatcher_connect(
            hass, SIGNAL_DEVICE_ADDED.format(entry.entry_id), _device_added
        )
    )


class OilFoxBridgeEntity(CoordinatorEntity[OilFoxBridgeCoordinator]):
    """Base class for entities describing the account (bridge) itself."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: OilFoxBridgeCoordinator, entry: ConfigEntry, key: str) -> None:
        super().__init__(coordinator)
        self._entry = entry
        self._attr_unique_id = f"{entry.entry_id}_{key}"
        self._attr_device_info = account_device_info(entry)


class OilFoxDeviceEntity(CoordinatorEntity[OilFoxBridgeCoordinator]):
    """Base class for entities that belong to one OilFox device.

    Values are read from the device handler, which the bridge updates
    before it notifies its entities.
    """

    _attr_has_entity_name = True

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry, key: str) -> None:
        super().__init__(handler.coordinator)
        self._handler = handler
        self._entry = entry
        self._attr_unique_id = f"{handler.hwid}_{key}"
        self._attr_device_info = {
            "identifiers": {(DOMAIN, handler.hwid)},
            "via_device": (DOMAIN, entry.entry_id),
            "name": f"OilFox {handler.hwid}",
            "manufacturer": MANUFACTURER,
            "model": "OilFox",
            "serial_number": handler.hwid,
        }

    @property
    def available(self) -> bool:
        return super().available and self._handler.available

    def _channel(self, channel: str) -> Any:
        return self._handler.channels.get(channel)

    async def async_update(self) -> None:
        """Poll now for this device (homeassistant.update_entity)."""
        await self._handler.async_request_refresh()
