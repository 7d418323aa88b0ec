# File: flow_helpers.py
"""Helpers for the Coin Vault config and options flows.

Schemas are built here with the current values as defaults, validators return
an errors dict keyed by form field, and build_* functions convert form input
(CONF_* keys) into the values stored on the config entry.
"""

from __future__ import annotations

from typing import Any

import voluptuous as vol
from homeassistant.helpers import selector
from homeassistant.util import dt as dt_util

from . import const
from .catalog import (
    format_multipliers,
    multipliers_non_decreasing,
    parse_multipliers,
)

# ----------------------------------------------------------------------------------
# GENERAL (title + calendar time zone)
# ----------------------------------------------------------------------------------


def build_general_schema(default: dict[str, Any] | None = None) -> vol.Schema:
    """Build the schema for the integration title and calendar time zone."""
    default = default or {}
    return vol.Schema(
        {
            vol.Required(
                const.CFOF_TITLE,
                default=default.get(const.CFOF_TITLE, const.COINVAULT_TITLE),
            ): str,
            vol.Required(
                const.CONF_CALENDAR_TIME_ZONE,
                default=default.get(
                    const.CONF_CALENDAR_TIME_ZONE, const.DEFAULT_CALENDAR_TIME_ZONE
                ),
            ): str,
        }
    )


def validate_time_zone(value: Any) -> dict[str, str]:
    """Validate an IANA time zone name."""
    if (
        not isinstance(value, str)
        or not value.strip()
        or dt_util.get_time_zone(value.strip()) is None
    ):
        return {const.CONF_CALENDAR_TIME_ZONE: const.TRANS_KEY_ERROR_INVALID_TIME_ZONE}
    return {}


# ----------------------------------------------------------------------------------
# ENGAGEMENT OPTIONS
# ----------------------------------------------------------------------------------


def build_engagement_schema(default: dict[str, Any] | None = None) -> vol.Schema:
    """Build the options schema for daily bonus, watch-and-earn and time zone."""
    default = default or {}

    current_multipliers = default.get(const.CONF_DAILY_STREAK_MULTIPLIERS)
    try:
        default_multipliers = format_multipliers(
            parse_multipliers(
                current_multipliers
                if current_multipliers is not None
                else const.DEFAULT_DAILY_STREAK_MULTIPLIERS
            )
        )
    except (TypeError, ValueError):
        default_multipliers = format_multipliers(
            const.DEFAULT_DAILY_STREAK_MULTIPLIERS
        )

    def _number(min_value: float, step: float, unit: str | None = None):
        return selector.NumberSelector(
            selector.NumberSelectorConfig(
                mode=selector.NumberSelectorMode.BOX,
                min=min_value,
                step=step,
                unit_of_measurement=unit,
            )
        )

    return vol.Schema(
        {
            vol.Required(
                const.CONF_CALENDAR_TIME_ZONE,
                default=default.get(
                    const.CONF_CALENDAR_TIME_ZONE, const.DEFAULT_CALENDAR_TIME_ZONE
                ),
            ): str,
            vol.Required(
                const.CONF_DAILY_BASE_REWARD,
                default=default.get(
                    const.CONF_DAILY_BASE_REWARD, const.DEFAULT_DAILY_BASE_REWARD
                ),
            ): _number(0, 1, const.UNIT_COINS),
            vol.Required(
                const.CONF_DAILY_STREAK_MULTIPLIERS, default=default_multipliers
            ): selector.TextSelector(selector.TextSelectorConfig(multiline=False)),
            vol.Required(
                const.CONF_DAILY_CAP_STREAK,
                default=default.get(
                    const.CONF_DAILY_CAP_STREAK, const.DEFAULT_DAILY_CAP_STREAK
                ),
            ): _number(1, 1),
            vol.Required(
                const.CONF_WATCH_REWARD_PER_VIEW,
                default=default.get(
                    const.CONF_WATCH_REWARD_PER_VIEW,
                    const.DEFAULT_WATCH_REWARD_PER_VIEW,
                ),
            ): _number(0, 1, const.UNIT_COINS),
            vol.Required(
                const.CONF_WATCH_COOLDOWN_MINUTES,
                default=default.get(
                    const.CONF_WATCH_COOLDOWN_MINUTES,
                    const.DEFAULT_WATCH_COOLDOWN_MINUTES,
                ),
            ): _number(0, 1, "min"),
            vol.Required(
                const.CONF_WATCH_MAX_VIEWS_PER_DAY,
                default=default.get(
                    const.CONF_WATCH_MAX_VIEWS_PER_DAY,
                    const.DEFAULT_WATCH_MAX_VIEWS_PER_DAY,
                ),
            ): _number(0, 1, const.UNIT_VIEWS),
        }
    )


def validate_engagement_inputs(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate engagement options.

    Returns:
        Dictionary of errors (empty if validation passes).
    """
    errors = validate_time_zone(user_input.get(const.CONF_CALENDAR_TIME_ZONE))

    try:
        multipliers = parse_multipliers(
            user_input.get(const.CONF_DAILY_STREAK_MULTIPLIERS, "")
        )
    except (TypeError, ValueError):
        multipliers = []
    if not multipliers:
        errors[const.CONF_DAILY_STREAK_MULTIPLIERS] = (
            const.TRANS_KEY_ERROR_INVALID_MULTIPLIERS
        )
    elif not multipliers_non_decreasing(multipliers):
        errors[const.CONF_DAILY_STREAK_MULTIPLIERS] = (
            const.TRANS_KEY_ERROR_DECREASING_MULTIPLIERS
        )

    return errors


def build_engagement_options(user_input: dict[str, Any]) -> dict[str, Any]:
    """Convert validated options form input into stored option values.

    Whole-number fields are stored as int; the selectors return floats.
    """
    return {
        const.CONF_CALENDAR_TIME_ZONE: str(
            user_input[const.CONF_CALENDAR_TIME_ZONE]
        ).strip(),
        const.CONF_DAILY_BASE_REWARD: int(user_input[const.CONF_DAILY_BASE_REWARD]),
        const.CONF_DAILY_STREAK_MULTIPLIERS: parse_multipliers(
            user_input[const.CONF_DAILY_STREAK_MULTIPLIERS]
        ),
        const.CONF_DAILY_CAP_STREAK: int(user_input[const.CONF_DAILY_CAP_STREAK]),
        const.CONF_WATCH_REWARD_PER_VIEW: float(
            user_input[const.CONF_WATCH_REWARD_PER_VIEW]
        ),
        const.CONF_WATCH_COOLDOWN_MINUTES: float(
            user_input[const.CONF_WATCH_COOLDOWN_MINUTES]
        ),
        const.CONF_WATCH_MAX_VIEWS_PER_DAY: int(
            user_input[const.CONF_WATCH_MAX_VIEWS_PER_DAY]
        ),
    }
