"""Per-device state and follow-up poll scheduling."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_point_in_utc_time
from homeassistant.util import dt as dt_util

from .api import ConfigurationError
from .const import (
    FIELD_BATTERY_LEVEL,
    FIELD_CURRENT_METERING_AT,
    FIELD_DAYS_REACH,
    FIELD_FILL_LEVEL_PERCENT,
    FIELD_FILL_LEVEL_QUANTITY,
    FIELD_NEXT_METERING_AT,
    FIELD_QUANTITY_UNIT,
    FOLLOW_UP_DELAY,
)
from .models import OilFoxDevice

if TYPE_CHECKING:
    from .coordinator import OilFoxBridgeCoordinator

_LOGGER = logging.getLogger(__name__)


class OilFoxDeviceHandler:
    """
    State of one OilFox device, fed by the bridge.

    The handler registers itself with the bridge as a listener. On every
    poll it picks its own record out of the device list, updates its
    channels, and arranges one extra poll shortly after the device's next
    metering so fresh readings show up without waiting for the next
    scheduled poll.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: "OilFoxBridgeCoordinator",
        hwid: Optional[str],
    ) -> None:
        if not hwid:
            raise ConfigurationError("hwid missing")

        self.hass = hass
        self.coordinator = coordinator
        self._hwid = hwid

        self.available = False
        self.device: Optional[OilFoxDevice] = None
        # Latest value per channel, keyed by API field name
        self.channels: Dict[str, Any] = {}

        self._follow_up_unsub: Optional[CALLBACK_TYPE] = None
        self._follow_up_target: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"<OilFoxDeviceHandler hwid={self._hwid}>"

    @property
    def hwid(self) -> str:
        return self._hwid

    # ------------------------------------------------------------------
    # Listener hooks
    # ------------------------------------------------------------------
    def on_added(self, bridge_id: str, hwid: str) -> None:
        _LOGGER.debug("OilFox %s: device added on bridge %s: %s", self._hwid, bridge_id, hwid)

    def on_removed(self, bridge_id: str, hwid: str) -> None:
        _LOGGER.debug("OilFox %s: device removed on bridge %s: %s", self._hwid, bridge_id, hwid)

    def on_refresh(self, devices: Sequence[OilFoxDevice]) -> None:
        for device in devices:
            if device.hwid != self._hwid:
                continue
            self._apply(device)
            return

        _LOGGER.debug("OilFox %s: not found in device list, marking offline", self._hwid)
        self.available = False

    def _update_state(self, channel: str, value: Any) -> None:
        self.channels[channel] = value

    def _apply(self, device: OilFoxDevice) -> None:
        _LOGGER.debug("OilFox %s: refresh %r", self._hwid, device)
        self.device = device

        self._update_state(FIELD_CURRENT_METERING_AT, _as_local(device.current_metering_at))
        self._update_state(FIELD_NEXT_METERING_AT, _as_local(device.next_metering_at))

        if device.days_reach is not None:
            self._update_state(FIELD_DAYS_REACH, device.days_reach)
        else:
            _LOGGER.debug("OilFox %s: daysReach missing from API", self._hwid)

        self._update_state(FIELD_BATTERY_LEVEL, device.battery_level)
        self._update_state(FIELD_FILL_LEVEL_PERCENT, device.fill_level_percent)
        self._update_state(FIELD_FILL_LEVEL_QUANTITY, device.quantity)
        self._update_state(FIELD_QUANTITY_UNIT, device.quantity_unit)

        self.available = True

        if device.next_metering_at is not None:
            self._schedule_follow_up(device.next_metering_at)

    # ------------------------------------------------------------------
    # Follow-up poll
    # ------------------------------------------------------------------
    @property
    def follow_up_pending(self) -> bool:
        return self._follow_up_unsub is not None

    def _schedule_follow_up(self, next_metering_at: datetime) -> None:
        if self._follow_up_unsub is not None:
            if self._follow_up_target == next_metering_at:
                return
            self._cancel_follow_up()

        when = next_metering_at + FOLLOW_UP_DELAY
        if when <= dt_util.utcnow():
            _LOGGER.debug(
                "OilFox %s: next metering %s already passed, no additional refresh",
                self._hwid,
                next_metering_at,
            )
            return

        _LOGGER.debug("OilFox %s: schedule additional refresh at %s", self._hwid, when)
        self._follow_up_target = next_metering_at
        self._follow_up_unsub = async_track_point_in_utc_time(
            self.hass, self._async_follow_up, when
        )

    def _cancel_follow_up(self) -> None:
        if self._follow_up_unsub is not None:
            self._follow_up_unsub()
        self._follow_up_unsub = None
        self._follow_up_target = None

    async def _async_follow_up(self, now: datetime) -> None:
        self._follow_up_unsub = None
        self._follow_up_target = None
        _LOGGER.debug("OilFox %s: additional refresh after metering", self._hwid)
        await self.coordinator.async_handle_refresh_command()

    # ------------------------------------------------------------------
    # Commands / lifecycle
    # ------------------------------------------------------------------
    async def async_request_refresh(self) -> bool:
        """Poll on behalf of this device; not subject to the fair-use gate."""
        return await self.coordinator.async_handle_refresh_command(self._hwid)

    @callback
    def dispose(self) -> None:
        _LOGGER.debug("OilFox %s: dispose", self._hwid)
        self._cancel_follow_up()
        self.coordinator.unregister_listener(self)


def _as_local(value: Optional[datetime]) -> Optional[datetime]:
    return dt_util.as_local(value) if value is not None else None
