# File: config_flow.py
"""Config flow for the Coin Vault integration.

A single instance is allowed. Setup asks only for a title and the calendar
time zone that day identifiers are computed in; reward parameters live in the
options flow.
"""

from __future__ import annotations

from typing import Any

from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from . import flow_helpers as fh
from .options_flow import CoinVaultOptionsFlowHandler


class CoinVaultConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Coin Vault."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        """Ask for the title and calendar time zone."""
        if self._async_current_entries():
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        errors: dict[str, str] = {}

        if user_input is not None:
            errors = fh.validate_time_zone(user_input.get(const.CONF_CALENDAR_TIME_ZONE))

            if not errors:
                time_zone = user_input[const.CONF_CALENDAR_TIME_ZONE].strip()
                const.LOGGER.debug(
                    "DEBUG: Creating Coin Vault entry with calendar time zone %s",
                    time_zone,
                )
                return self.async_create_entry(
                    title=user_input[const.CFOF_TITLE],
                    data={const.CONF_CALENDAR_TIME_ZONE: time_zone},
                )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER,
            data_schema=fh.build_general_schema(user_input),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        """Return the Options Flow."""
        return CoinVaultOptionsFlowHandler()
