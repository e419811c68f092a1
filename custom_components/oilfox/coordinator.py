"""
Bridge coordinator for the OilFox integration.

One coordinator per config entry acts as the bridge: it owns the
authenticated API client, polls the full device list on a fixed interval
(and on demand, within the vendor's fair-use allowance) and fans every
poll out to the registered listeners.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryAuthFailed
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .api import AuthError, NotFoundError, OilFoxClient, OilFoxError
from .const import DOMAIN, FAIR_USE_INTERVAL, STATUS_ONLINE
from .listener import ListenerRegistry, OilFoxStatusListener
from .models import OilFoxDevice

_LOGGER = logging.getLogger(__name__)


@dataclass
class BridgeStatus:
    """Connectivity of the bridge as last observed."""

    online: bool = False
    reason: str = STATUS_ONLINE
    message: Optional[str] = None


class OilFoxBridgeCoordinator(DataUpdateCoordinator[List[OilFoxDevice]]):
    """
    This class manages:
    - Periodically fetching the device list from the FoxInsights API
    - Logging in / refreshing the access token before each poll
    - Gating on-demand polls by the fair-use allowance
    - Notifying device handlers and discovery about every poll
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        client: OilFoxClient,
        refresh_hours: int,
    ) -> None:
        self.client = client
        self.listeners = ListenerRegistry()
        self.status = BridgeStatus()

        # Only one poll in flight per bridge
        self._poll_lock = asyncio.Lock()
        # time.monotonic() of the last accepted unscheduled refresh; starting
        # the bridge counts as one
        self._last_unscheduled_refresh: float = time.monotonic()

        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(hours=refresh_hours),
        )

    @property
    def bridge_id(self) -> str:
        return self.config_entry.entry_id

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------
    def register_listener(self, listener: OilFoxStatusListener) -> bool:
        _LOGGER.debug("OilFox bridge %s: register listener %r", self.bridge_id, listener)
        return self.listeners.register(listener)

    def unregister_listener(self, listener: OilFoxStatusListener) -> bool:
        _LOGGER.debug("OilFox bridge %s: unregister listener %r", self.bridge_id, listener)
        return self.listeners.unregister(listener)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    def _set_online(self) -> None:
        if not self.status.online:
            _LOGGER.debug("OilFox bridge %s: online", self.bridge_id)
        self.status = BridgeStatus(online=True)

    def _set_offline(self, err: OilFoxError) -> None:
        _LOGGER.warning("OilFox bridge %s: offline (%s): %s", self.bridge_id, err.reason, err)
        self.status = BridgeStatus(online=False, reason=err.reason, message=str(err))

    # ------------------------------------------------------------------
    # Refresh commands
    # ------------------------------------------------------------------
    def _fair_use_allows_refresh(self) -> bool:
        now = time.monotonic()
        elapsed = now - self._last_unscheduled_refresh
        _LOGGER.debug(
            "OilFox bridge: last additional device refresh %d minutes ago", elapsed / 60
        )
        if elapsed < FAIR_USE_INTERVAL.total_seconds():
            return False
        self._last_unscheduled_refresh = now
        return True

    async def async_handle_refresh_command(self, hwid: Optional[str] = None) -> bool:
        """
        Poll now, unless the request would break the fair-use allowance.

        Requests without a target (``hwid`` is None), such as the follow-up
        poll after a device's metering, are dropped when the previous such
        refresh happened less than an hour ago. Returns whether a poll ran.
        """
        if hwid is None and not self._fair_use_allows_refresh():
            _LOGGER.debug("OilFox bridge: too fast refresh, defer request")
            return False

        _LOGGER.debug("OilFox bridge: refresh requested (target=%s)", hwid)
        await self.async_refresh()
        return True

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------
    async def async_get_all_devices(self) -> List[OilFoxDevice]:
        """
        Fetch the device list and announce devices no listener knows yet.

        Every listener receives one on_added call per unknown hwid.
        """
        devices = await self.client.async_get_devices()

        known = self.listeners.known_hwids()
        for device in devices:
            _LOGGER.debug("OilFox bridge: device from API with hwid %s", device.hwid)
            if device.hwid in known:
                continue
            known.add(device.hwid)
            _LOGGER.debug("OilFox bridge: new device with hwid %s", device.hwid)
            self.listeners.dispatch_added(self.bridge_id, device.hwid)

        return devices

    async def _async_update_data(self) -> List[OilFoxDevice]:
        """
        Called by Home Assistant based on update_interval OR by
        async_handle_refresh_command.

        Authentication problems raise ConfigEntryAuthFailed so that HA
        launches the re-authentication UI; everything else is UpdateFailed
        and retried on the next tick.
        """
        async with self._poll_lock:
            try:
                await self.client.async_ensure_authenticated()
            except (AuthError, NotFoundError) as err:
                self._set_offline(err)
                raise ConfigEntryAuthFailed(str(err)) from err
            except OilFoxError as err:
                self._set_offline(err)
                raise UpdateFailed(str(err)) from err

            self._set_online()

            try:
                devices = await self.async_get_all_devices()
            except OilFoxError as err:
                self._set_offline(err)
                raise UpdateFailed(str(err)) from err

            self.listeners.dispatch_refresh(devices)
            return devices
