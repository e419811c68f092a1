"""Device records returned by the FoxInsights customer API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from .const import (
    FIELD_BATTERY_LEVEL,
    FIELD_CURRENT_METERING_AT,
    FIELD_DAYS_REACH,
    FIELD_FILL_LEVEL_PERCENT,
    FIELD_FILL_LEVEL_QUANTITY,
    FIELD_HWID,
    FIELD_NEXT_METERING_AT,
    FIELD_QUANTITY_UNIT,
    METERING_TIME_FORMAT,
    QUANTITY_UNIT_LITERS,
)

_LOGGER = logging.getLogger(__name__)


class QuantityUnit(Enum):
    """Unit a device reports its fill level quantity in."""

    LITERS = "L"
    KILOGRAMS = "Kg"

    @classmethod
    def from_api(cls, value: Any) -> "QuantityUnit":
        """Anything but "L" is treated as kilograms."""
        if value == QUANTITY_UNIT_LITERS:
            return cls.LITERS
        return cls.KILOGRAMS


class Quantity(NamedTuple):
    value: int
    unit: QuantityUnit


def _safe_int(x: Any) -> Optional[int]:
    """Safely convert a value to int, returning None on failure."""
    try:
        return int(x)
    except (ValueError, TypeError):
        return None


def parse_metering_time(value: Any) -> Optional[datetime]:
    """Parse ``yyyy-MM-dd'T'HH:mm:ss.SSS'Z'`` into an aware UTC datetime.

    Returns None for missing or malformed values.
    """
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.strptime(value, METERING_TIME_FORMAT)
    except ValueError:
        _LOGGER.debug("OilFox: unparsable metering time %r", value)
        return None
    return parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class OilFoxDevice:
    """One item of the ``items`` list of GET /customer-api/v1/device."""

    hwid: str
    current_metering_at: Optional[datetime] = None
    next_metering_at: Optional[datetime] = None
    # First days this information is missing with a new OilFox device
    days_reach: Optional[int] = None
    battery_level: Optional[str] = None
    fill_level_percent: Optional[int] = None
    fill_level_quantity: Optional[int] = None
    quantity_unit: Optional[QuantityUnit] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> "OilFoxDevice":
        unit = item.get(FIELD_QUANTITY_UNIT)
        battery = item.get(FIELD_BATTERY_LEVEL)
        return cls(
            hwid=str(item[FIELD_HWID]),
            current_metering_at=parse_metering_time(item.get(FIELD_CURRENT_METERING_AT)),
            next_metering_at=parse_metering_time(item.get(FIELD_NEXT_METERING_AT)),
            days_reach=_safe_int(item.get(FIELD_DAYS_REACH)),
            battery_level=str(battery) if battery is not None else None,
            fill_level_percent=_safe_int(item.get(FIELD_FILL_LEVEL_PERCENT)),
            fill_level_quantity=_safe_int(item.get(FIELD_FILL_LEVEL_QUANTITY)),
            quantity_unit=QuantityUnit.from_api(unit) if unit is not None else None,
            raw=dict(item),
        )

    @property
    def quantity(self) -> Optional[Quantity]:
        """Fill level quantity tagged with its unit; only "L" means liters."""
        if self.fill_level_quantity is None:
            return None
        return Quantity(
            self.fill_level_quantity,
            self.quantity_unit or QuantityUnit.KILOGRAMS,
        )


def parse_devices(items: Iterable[Any]) -> List[OilFoxDevice]:
    """Build device records, skipping entries without a hwid."""
    devices: List[OilFoxDevice] = []
    for item in items:
        if not isinstance(item, Mapping) or not item.get(FIELD_HWID):
            _LOGGER.debug("OilFox: skipping device entry without hwid: %r", item)
            continue
        devices.append(OilFoxDevice.from_api(item))
    return devices
