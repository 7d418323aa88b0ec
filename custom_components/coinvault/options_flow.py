# File: options_flow.py
"""Options Flow for the Coin Vault integration.

Edits the engagement reward parameters and the calendar time zone. Saving
reloads the entry through the update listener registered in __init__.py so
the transaction manager picks up the new configuration.
"""

from __future__ import annotations

from typing import Any

from homeassistant import config_entries

from . import const
from . import flow_helpers as fh


class CoinVaultOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for daily bonus and watch-and-earn parameters."""

    def _current_values(self) -> dict[str, Any]:
        """Return entry data overlaid with saved options."""
        return {**self.config_entry.data, **self.config_entry.options}

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        """Show and save the engagement options form."""
        errors: dict[str, str] = {}

        if user_input is not None:
            errors = fh.validate_engagement_inputs(user_input)

            if not errors:
                options = {
                    **self.config_entry.options,
                    **fh.build_engagement_options(user_input),
                }
                const.LOGGER.debug(
                    "DEBUG: Updating Coin Vault options: %s", sorted(options)
                )
                return self.async_create_entry(title="", data=options)

        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=fh.build_engagement_schema(
                user_input if user_input is not None else self._current_values()
            ),
            errors=errors,
        )
