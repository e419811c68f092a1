"""Discovery of OilFox devices reported by the bridge."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .const import SIGNAL_DEVICE_ADDED
from .device import OilFoxDeviceHandler
from .models import OilFoxDevice

if TYPE_CHECKING:
    from .coordinator import OilFoxBridgeCoordinator

_LOGGER = logging.getLogger(__name__)


class OilFoxDiscovery:
    """
    Listener that turns newly reported hwids into device handlers.

    It stands for no device itself (hwid is None). Platforms pick up the
    handlers it creates through the SIGNAL_DEVICE_ADDED dispatcher signal,
    and read ``devices`` for the handlers created before they were set up.
    """

    def __init__(self, hass: HomeAssistant, coordinator: "OilFoxBridgeCoordinator") -> None:
        self.hass = hass
        self.coordinator = coordinator
        self.devices: Dict[str, OilFoxDeviceHandler] = {}

    def __repr__(self) -> str:
        return "<OilFoxDiscovery>"

    @property
    def hwid(self) -> Optional[str]:
        return None

    def on_added(self, bridge_id: str, hwid: str) -> None:
        if hwid in self.devices:
            return

        _LOGGER.debug("OilFox discovery: found device %s on bridge %s", hwid, bridge_id)
        handler = OilFoxDeviceHandler(self.hass, self.coordinator, hwid)
        self.devices[hwid] = handler
        self.coordinator.register_listener(handler)

        async_dispatcher_send(self.hass, SIGNAL_DEVICE_ADDED.format(bridge_id), handler)

    def on_removed(self, bridge_id: str, hwid: str) -> None:
        _LOGGER.debug("OilFox discovery: device %s removed from bridge %s", hwid, bridge_id)

    def on_refresh(self, devices: Sequence[OilFoxDevice]) -> None:
        return

    @callback
    def async_remove(self, hwid: str) -> bool:
        """Forget a device; returns False if it was never discovered."""
        handler = self.devices.pop(hwid, None)
        if handler is None:
            return False

        handler.dispose()
        self.coordinator.listeners.dispatch_removed(self.coordinator.bridge_id, hwid)
        return True

    @callback
    def dispose(self) -> None:
        for handler in self.devices.values():
            handler.dispose()
        self.devices.clear()
        self.coordinator.unregister_listener(self)
