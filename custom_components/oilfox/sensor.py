"""Sensor platform for OilFox."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import (
    PERCENTAGE,
    EntityCategory,
    UnitOfMass,
    UnitOfTime,
    UnitOfVolume,
)
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import Entity
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    BATTERY_LEVELS,
    DOMAIN,
    FIELD_BATTERY_LEVEL,
    FIELD_CURRENT_METERING_AT,
    FIELD_DAYS_REACH,
    FIELD_FILL_LEVEL_PERCENT,
    FIELD_FILL_LEVEL_QUANTITY,
    FIELD_NEXT_METERING_AT,
    FIELD_QUANTITY_UNIT,
    STATUSES,
)
from .device import OilFoxDeviceHandler
from .entity import OilFoxBridgeEntity, OilFoxDeviceEntity, async_setup_device_entities
from .models import QuantityUnit

_LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# async_setup_entry
# -----------------------------------------------------------------------------
async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up OilFox sensor entities from a config entry."""
    coordinator = hass.data[DOMAIN][entry.entry_id].coordinator

    async_add_entities(
        [
            DeviceCountSensor(coordinator, entry),
            ApiStatusSensor(coordinator, entry),
        ]
    )

    def build_entities_for_device(handler: OilFoxDeviceHandler) -> List[Entity]:
        return [
            CurrentMeteringSensor(handler, entry),
            NextMeteringSensor(handler, entry),
            DaysReachSensor(handler, entry),
            BatteryLevelSensor(handler, entry),
            FillLevelPercentSensor(handler, entry),
            FillLevelQuantitySensor(handler, entry),
            QuantityUnitSensor(handler, entry),
        ]

    async_setup_device_entities(hass, entry, async_add_entities, build_entities_for_device)


# -----------------------------------------------------------------------------
# Account-level sensors
# -----------------------------------------------------------------------------
class DeviceCountSensor(OilFoxBridgeEntity, SensorEntity):
    """Number of OilFox devices reported for the account."""

    _attr_name = "Number of Devices"
    _attr_icon = "mdi:barrel"
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        super().__init__(coordinator, entry, "device_count")

    @property
    def native_value(self) -> int:
        return len(self.coordinator.data or [])


class ApiStatusSensor(OilFoxBridgeEntity, SensorEntity):
    """Connectivity of the bridge, including why it is offline."""

    _attr_name = "API Status"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = list(STATUSES)
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, coordinator, entry: ConfigEntry) -> None:
        super().__init__(coordinator, entry, "api_status")

    @property
    def available(self) -> bool:
        # Reports the failure reason exactly when polling fails
        return True

    @property
    def native_value(self) -> str:
        return self.coordinator.status.reason

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"message": self.coordinator.status.message}


# -----------------------------------------------------------------------------
# Metering sensors
# -----------------------------------------------------------------------------
class CurrentMeteringSensor(OilFoxDeviceEntity, SensorEntity):
    """When the device measured the values shown."""

    _attr_name = "Current Metering"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "current_metering_at")

    @property
    def native_value(self) -> datetime | None:
        return self._channel(FIELD_CURRENT_METERING_AT)


class NextMeteringSensor(OilFoxDeviceEntity, SensorEntity):
    """When the device is expected to measure again."""

    _attr_name = "Next Metering"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "next_metering_at")

    @property
    def native_value(self) -> datetime | None:
        return self._channel(FIELD_NEXT_METERING_AT)


class DaysReachSensor(OilFoxDeviceEntity, SensorEntity):
    """Days until the tank is expected to run empty."""

    _attr_name = "Days Reach"
    _attr_icon = "mdi:calendar-clock"
    _attr_device_class = SensorDeviceClass.DURATION
    _attr_native_unit_of_measurement = UnitOfTime.DAYS
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "days_reach")

    @property
    def native_value(self) -> int | None:
        return self._channel(FIELD_DAYS_REACH)


# -----------------------------------------------------------------------------
# Fill level sensors
# -----------------------------------------------------------------------------
class FillLevelPercentSensor(OilFoxDeviceEntity, SensorEntity):
    _attr_name = "Fill Level"
    _attr_icon = "mdi:storage-tank"
    _attr_native_unit_of_measurement = PERCENTAGE
    _attr_state_class = SensorStateClass.MEASUREMENT

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "fill_level_percent")

    @property
    def native_value(self) -> int | None:
        return self._channel(FIELD_FILL_LEVEL_PERCENT)


class FillLevelQuantitySensor(OilFoxDeviceEntity, SensorEntity):
    """Remaining quantity, in liters or kilograms as reported by the device."""

    _attr_name = "Fill Level Quantity"
    _attr_state_class = SensorStateClass.MEASUREMENT
    _attr_suggested_display_precision = 0

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "fill_level_quantity")

    def _is_liters(self) -> bool:
        quantity = self._channel(FIELD_FILL_LEVEL_QUANTITY)
        return quantity is None or quantity.unit is QuantityUnit.LITERS

    @property
    def device_class(self) -> SensorDeviceClass:
        if self._is_liters():
            return SensorDeviceClass.VOLUME_STORAGE
        return SensorDeviceClass.WEIGHT

    @property
    def native_unit_of_measurement(self) -> str:
        if self._is_liters():
            return UnitOfVolume.LITERS
        return UnitOfMass.KILOGRAMS

    @property
    def native_value(self) -> int | None:
        quantity = self._channel(FIELD_FILL_LEVEL_QUANTITY)
        return quantity.value if quantity is not None else None


class QuantityUnitSensor(OilFoxDeviceEntity, SensorEntity):
    """Unit string as reported by the API ("L" or "Kg")."""

    _attr_name = "Quantity Unit"
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_entity_registry_enabled_default = False

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "quantity_unit")

    @property
    def native_value(self) -> str | None:
        unit = self._channel(FIELD_QUANTITY_UNIT)
        return unit.value if unit is not None else None


# -----------------------------------------------------------------------------
# Battery
# -----------------------------------------------------------------------------
class BatteryLevelSensor(OilFoxDeviceEntity, SensorEntity):
    """Battery level text as reported by the OilFox device."""

    _attr_name = "Battery Level"
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [level.lower() for level in BATTERY_LEVELS]
    _attr_entity_category = EntityCategory.DIAGNOSTIC

    def __init__(self, handler: OilFoxDeviceHandler, entry: ConfigEntry) -> None:
        super().__init__(handler, entry, "battery_level")

    @property
    def native_value(self) -> str | None:
        level = self._channel(FIELD_BATTERY_LEVEL)
        if level is None:
            return None
        value = level.lower()
        if value not in self._attr_options:
            _LOGGER.debug("OilFox %s: unknown battery level %r", self._handler.hwid, level)
            return None
        return value

    @property
    def icon(self) -> str:
        return "mdi:battery" if self.native_value in ("full", "good") else "mdi:battery-alert"
