"""Binary sensor platform for OilFox.

Defines binary_sensor entities for the integration:

- One CloudConnectionSensor per account:
    - ON while the bridge is logged in and polling succeeds.
- One BatteryLowSensor per device:
    - ON when the reported battery level is WARNING or CRITICAL.
"""
from __future__ import annotations

import logging
from typing import List

from homeassistant.components.binary_sensor import BinarySensorDeviceClass
from homeassistant.components.binary_sensor import BinarySensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import BATTERY_LOW_LEVELS, DOMAIN, FIELD_BATTERY_LEVEL
from .device import OilFoxDeviceHandler
from .entity import OilFoxBridgeEntity, OilFoxDeviceEntity, async_setup_device_entities

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up OilFox binary_sensor entities from a config entry."""
    coordinator = hass.data[DOMAIN][entry.entry_id].coordinator

    async_add_entities([CloudConnectionSensor(coordinator, entry)])

    def build_entities_for_device(handler: OilFoxDeviceHandler) -> List[Entity]:
        return [BatteryLowSensor(handler, entry)]

    async_setup_device_entities(hass, entry, async_add_entities, build_entities_for_device)


class CloudConnectionSensor(OilFoxBridgeEntity, BinarySensorEntity):
    """Whether the bridge is online."""

    _attr_name = "Cloud Connection"
    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        super().__init__(coordinator, entry, "cloud_connection")

    @property
    def available(self) -> bool:
        return True

    @property
    def is_on(self) -> bool:
        return self.coordinator.status.online


class BatteryLowSensor(OilFoxDeviceEntity, BinarySensorEntity):
    _attr_name = "Battery Low"
    _attr_device_class = BinarySensorDeviceClass.BATTERY

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "battery_low")

    @property
    def is_on(self) -> bool | None:
        level = self._channel(FIELD_BATTERY_LEVEL)
        if level is None:
            return None
        return level.upper() in BATTERY_LOW_LEVELS
