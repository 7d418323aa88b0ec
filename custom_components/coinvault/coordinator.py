# File: coordinator.py
"""Coordinator for the Coin Vault integration.

Holds the read side: one snapshot per user of the ledger, balance mirror and
engagement state, plus the advisory eligibility projections sensors display.
Claims never go through the coordinator; it refreshes after the transaction
manager signals a commit and on a short interval so countdowns stay current.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .helpers.entity_helpers import get_event_signal
from .store import TransactionConflictError

if TYPE_CHECKING:
    from typing import Any

    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .managers.transaction_manager import RewardTransactionManager
    from .type_defs import UserAccountData


class CoinVaultDataCoordinator(DataUpdateCoordinator[dict[str, "UserAccountData"]]):
    """Coordinator holding per-user account snapshots keyed by user id."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        transaction_manager: RewardTransactionManager,
    ) -> None:
        """Initialize the CoinVaultDataCoordinator."""
        super().__init__(
            hass,
            const.LOGGER,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=timedelta(minutes=const.DEFAULT_UPDATE_INTERVAL),
        )
        self.config_entry = config_entry
        self.transaction_manager = transaction_manager

    def async_setup_listeners(self) -> None:
        """Refresh after every committed award or catalog change."""
        for suffix in (
            const.SIGNAL_SUFFIX_COINS_AWARDED,
            const.SIGNAL_SUFFIX_CATALOG_UPDATED,
        ):
            self.config_entry.async_on_unload(
                async_dispatcher_connect(
                    self.hass,
                    get_event_signal(self.config_entry.entry_id, suffix),
                    self._on_store_changed,
                )
            )

    async def _on_store_changed(self, payload: dict[str, Any]) -> None:
        """Request a debounced refresh after a commit."""
        const.LOGGER.debug(
            "DEBUG: Refresh requested after store change: %s", list(payload)
        )
        await self.async_request_refresh()

    @property
    def users_data(self) -> dict[str, UserAccountData]:
        """Per-user snapshots from the last refresh."""
        return self.data or {}

    async def _async_update_data(self) -> dict[str, UserAccountData]:
        """Read every user's account and project eligibility."""
        manager = self.transaction_manager
        try:
            return {
                user_id: await manager.async_get_account_overview(user_id)
                for user_id in manager.user_ids()
            }
        except TransactionConflictError as err:
            raise UpdateFailed(f"Error reading Coin Vault accounts: {err}") from err
