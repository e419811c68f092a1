"""
Diagnostics support for the OilFox integration.

This allows users to download sanitized diagnostic information from the UI:
Settings -> Devices & Services -> OilFox -> ⋮ -> Download diagnostics

Diagnostics files help with debugging but MUST NOT contain sensitive data.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_EMAIL, CONF_PASSWORD, DOMAIN

# Fields that must always be removed from any diagnostic output.
TO_REDACT = {
    CONF_EMAIL,
    CONF_PASSWORD,
    "access_token",
    "refresh_token",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return bridge status, session state and the last polled devices."""
    data = hass.data[DOMAIN].get(entry.entry_id)

    if data is None:
        return {"error": "Bridge not found"}

    coordinator = data.coordinator
    auth = coordinator.client.auth

    return async_redact_data(
        {
            "entry": dict(entry.data),
            "options": dict(entry.options),
            "status": asdict(coordinator.status),
            "last_update_success": coordinator.last_update_success,
            "session": {
                "logged_in": auth.refresh_token is not None,
                "token_age_seconds": round(auth.age()) if auth.refresh_token else None,
            },
            "listeners": [repr(listener) for listener in coordinator.listeners],
            "devices": {
                hwid: {
                    "available": handler.available,
                    "follow_up_pending": handler.follow_up_pending,
                }
                for hwid, handler in data.discovery.devices.items()
            },
            "items": [device.raw for device in coordinator.data or []],
        },
        TO_REDACT,
    )
