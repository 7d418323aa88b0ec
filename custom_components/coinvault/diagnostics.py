"""Diagnostics support for the Coin Vault integration.

The config entry dump contains every stored document exactly as persisted,
plus a ledger audit per user so inconsistent totals are easy to spot.
"""

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.device_registry import DeviceEntry

from . import const
from .coordinator import CoinVaultDataCoordinator
from .engines.reward_engine import RewardEngine
from .managers import RewardTransactionManager
from .utils.dt_utils import dt_serialize


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    manager: RewardTransactionManager = hass.data[const.DOMAIN][entry.entry_id][
        const.TRANSACTION_MANAGER
    ]
    documents = manager.store.as_dict()

    ledger_audits = {
        user_id: RewardEngine.verify_ledger(ledger)
        for user_id, ledger in documents.get(const.COLLECTION_COIN_CLAIMS, {}).items()
    }

    return {
        "engagement_config": manager.engagement_config,
        "calendar_time_zone": str(manager.time_zone),
        "ledger_audits": ledger_audits,
        const.DATA_DOCUMENTS: documents,
    }


async def async_get_device_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry, device: DeviceEntry
) -> dict[str, Any]:
    """Return the account snapshot of the user behind a device."""
    coordinator: CoinVaultDataCoordinator = hass.data[const.DOMAIN][entry.entry_id][
        const.COORDINATOR
    ]

    user_id = None
    for identifier in device.identifiers:
        if identifier[0] == const.DOMAIN:
            user_id = identifier[1]
            break

    if not user_id:
        return {"error": "Could not determine user_id from device identifiers"}

    user_data = coordinator.users_data.get(user_id)
    if not user_data:
        return {"error": f"Account data not found for user_id: {user_id}"}

    return {
        "user_id": user_id,
        "user_data": dt_serialize(user_data),
    }
