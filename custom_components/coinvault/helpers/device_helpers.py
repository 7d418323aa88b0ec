# File: helpers/device_helpers.py
"""Device registry helper functions for Coin Vault.

Every user with an account gets one service device that groups their
coin balance and engagement sensors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo

from .. import const

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant


async def async_get_user_display_name(hass: HomeAssistant, user_id: str) -> str:
    """Return the Home Assistant user's name, or the raw id if unknown."""
    user = await hass.auth.async_get_user(user_id)
    if user is None or not user.name:
        return user_id
    return user.name


def create_user_device_info(
    user_id: str,
    user_name: str,
    config_entry: ConfigEntry,
) -> DeviceInfo:
    """Create device info for a user's coin account.

    Args:
        user_id: Home Assistant user id
        user_name: Display name of the user
        config_entry: Config entry for this integration instance

    Returns:
        DeviceInfo dict for the user device
    """
    return DeviceInfo(
        identifiers={(const.DOMAIN, user_id)},
        name=f"{user_name} ({config_entry.title})",
        manufacturer=const.MANUFACTURER,
        model="Coin Account",
        entry_type=DeviceEntryType.SERVICE,
    )
