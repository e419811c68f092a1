"""Config flow for the OilFox integration.

This file handles:
- The initial config flow (e-mail, password, refresh interval, API host)
- Live validation of credentials against the FoxInsights customer API
- Re-authentication when the stored password stops working
- The options flow for changing the refresh interval later
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.aiohttp_client import async_create_clientsession

from .api import OilFoxClient, OilFoxError
from .const import (
    CONF_ADDRESS,
    CONF_EMAIL,
    CONF_PASSWORD,
    CONF_REFRESH,
    DEFAULT_ADDRESS,
    DEFAULT_REFRESH_HOURS,
    DOMAIN,
    MAX_REFRESH_HOURS,
    MIN_REFRESH_HOURS,
)

_LOGGER = logging.getLogger(__name__)

REFRESH_VALIDATOR = vol.All(
    vol.Coerce(int), vol.Range(min=MIN_REFRESH_HOURS, max=MAX_REFRESH_HOURS)
)


class OilFoxConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle the initial config flow for OilFox."""

    VERSION = 1
    CONNECTION_CLASS = config_entries.CONN_CLASS_CLOUD_POLL

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Ask for credentials, validate them and create the entry."""
        errors: dict[str, str] = {}

        if user_input is not None:
            error = await self._async_validate_input(
                user_input[CONF_EMAIL],
                user_input[CONF_PASSWORD],
                user_input.get(CONF_ADDRESS, DEFAULT_ADDRESS),
            )

            if error is None:
                # The same account can't be added twice
                await self.async_set_unique_id(user_input[CONF_EMAIL].lower())
                self._abort_if_unique_id_configured()

                return self.async_create_entry(
                    title=user_input[CONF_EMAIL],
                    data={
                        CONF_EMAIL: user_input[CONF_EMAIL],
                        CONF_PASSWORD: user_input[CONF_PASSWORD],
                        CONF_ADDRESS: user_input.get(CONF_ADDRESS, DEFAULT_ADDRESS),
                        CONF_REFRESH: user_input.get(CONF_REFRESH, DEFAULT_REFRESH_HOURS),
                    },
                )

            errors["base"] = error

        user_input = user_input or {}
        schema = vol.Schema(
            {
                vol.Required(CONF_EMAIL, default=user_input.get(CONF_EMAIL, "")): str,
                vol.Required(CONF_PASSWORD): str,
                vol.Optional(
                    CONF_REFRESH,
                    default=user_input.get(CONF_REFRESH, DEFAULT_REFRESH_HOURS),
                ): REFRESH_VALIDATOR,
                vol.Optional(
                    CONF_ADDRESS,
                    default=user_input.get(CONF_ADDRESS, DEFAULT_ADDRESS),
                ): str,
            }
        )

        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    async def async_step_reauth(self, entry_data: Mapping[str, Any]) -> FlowResult:
        """Started by Home Assistant when the bridge reports invalid credentials."""
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Ask for the new password of the configured account."""
        entry = self._get_reauth_entry()
        errors: dict[str, str] = {}

        if user_input is not None:
            error = await self._async_validate_input(
                entry.data[CONF_EMAIL],
                user_input[CONF_PASSWORD],
                entry.data.get(CONF_ADDRESS, DEFAULT_ADDRESS),
            )
            if error is None:
                return self.async_update_reload_and_abort(
                    entry, data_updates={CONF_PASSWORD: user_input[CONF_PASSWORD]}
                )
            errors["base"] = error

        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=vol.Schema({vol.Required(CONF_PASSWORD): str}),
            description_placeholders={CONF_EMAIL: entry.data[CONF_EMAIL]},
            errors=errors,
        )

    async def _async_validate_input(
        self, email: str, password: str, address: str
    ) -> str | None:
        """Validate credentials by logging in and listing the devices.

        Returns:
            None if validation passed.
            An error key from strings.json otherwise, e.g.:
                - "invalid_auth"   → invalid password
                - "unknown_user"   → e-mail address not registered
                - "rate_limited"   → too many requests
                - "cannot_connect" → network / HTTP issues
                - "unknown"        → unexpected exception
        """
        client = OilFoxClient(async_create_clientsession(self.hass), email, password, address)

        try:
            await client.async_login()
            await client.async_get_devices()
        except OilFoxError as err:
            _LOGGER.warning(
                "OilFox config flow: validating credentials for %s failed: %s",
                email,
                err,
            )
            return err.reason
        except Exception:  # noqa: BLE001
            _LOGGER.exception("OilFox config flow: unexpected exception during validation")
            return "unknown"

        _LOGGER.debug("OilFox config flow: successfully validated credentials for %s", email)
        return None

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> config_entries.OptionsFlow:
        """Return the options flow handler for this config entry."""
        return OilFoxOptionsFlow(config_entry)


class OilFoxOptionsFlow(config_entries.OptionsFlow):
    """Handle the options flow for OilFox (refresh interval)."""

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current_refresh = self.entry.options.get(
            CONF_REFRESH,
            self.entry.data.get(CONF_REFRESH, DEFAULT_REFRESH_HOURS),
        )

        schema = vol.Schema(
            {vol.Optional(CONF_REFRESH, default=current_refresh): REFRESH_VALIDATOR}
        )

        return self.async_show_form(step_id="init", data_schema=schema)
