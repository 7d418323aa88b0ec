# File: __init__.py
"""Initialization file for the Coin Vault integration.

Handles setting up the integration, including loading configuration entries,
initializing the document store, and wiring the transaction manager that
performs claims to the coordinator that feeds the sensors.

Key Features:
- Config entry setup, unload and removal support.
- Exactly-once reward claims through RewardTransactionManager.
- Reload on options change so new reward parameters take effect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.util import dt as dt_util

from . import const
from .catalog import build_engagement_config
from .coordinator import CoinVaultDataCoordinator
from .managers import RewardTransactionManager
from .services import async_setup_services, async_unload_services
from .store import HomeAssistantDocumentStore

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo


def _resolve_time_zone(entry: ConfigEntry) -> ZoneInfo:
    """Return the configured calendar time zone, falling back to UTC."""
    name = entry.options.get(
        const.CONF_CALENDAR_TIME_ZONE,
        entry.data.get(const.CONF_CALENDAR_TIME_ZONE, const.DEFAULT_CALENDAR_TIME_ZONE),
    )
    time_zone = dt_util.get_time_zone(name)
    if time_zone is None:
        const.LOGGER.warning(
            "WARNING: Unknown calendar time zone '%s', using %s",
            name,
            const.DEFAULT_CALENDAR_TIME_ZONE,
        )
        time_zone = dt_util.get_time_zone(const.DEFAULT_CALENDAR_TIME_ZONE)
    return time_zone


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for Coin Vault entry: %s", entry.entry_id)

    # Load persisted documents before anything reads them.
    store = HomeAssistantDocumentStore(hass, const.STORAGE_KEY)
    await store.async_initialize()

    transaction_manager = RewardTransactionManager(
        hass,
        entry.entry_id,
        store,
        build_engagement_config(entry.options),
        time_zone=_resolve_time_zone(entry),
    )
    await transaction_manager.async_setup()

    coordinator = CoinVaultDataCoordinator(hass, entry, transaction_manager)
    coordinator.async_setup_listeners()

    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady as e:
        const.LOGGER.error("ERROR: Failed to refresh coordinator data: %s", e)
        raise

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.TRANSACTION_MANAGER: transaction_manager,
        const.DOCUMENT_STORE: store,
    }

    async_setup_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, const.PLATFORMS)

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    const.LOGGER.info("INFO: Coin Vault setup complete for entry: %s", entry.entry_id)
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    const.LOGGER.info("INFO: Options changed, reloading Coin Vault entry: %s", entry.entry_id)
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading Coin Vault entry: %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, const.PLATFORMS)

    if unload_ok:
        hass.data[const.DOMAIN].pop(entry.entry_id)
        await async_unload_services(hass)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry by deleting its stored documents."""
    const.LOGGER.info("INFO: Removing Coin Vault entry: %s", entry.entry_id)

    store = HomeAssistantDocumentStore(hass, const.STORAGE_KEY)
    await store.async_delete_storage()

    const.LOGGER.info("INFO: Coin Vault entry data cleared: %s", entry.entry_id)
