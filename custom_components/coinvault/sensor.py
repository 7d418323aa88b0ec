# File: sensor.py
"""Sensors for the Coin Vault integration.

One device per user account, each with:

01. CoinBalanceSensor - spendable balance from the balance mirror
02. DailyStreakSensor - current daily bonus streak and next projected reward
03. WatchViewsRemainingSensor - watch-and-earn sessions left today

Entities for users who claim for the first time are added when the
transaction manager signals a new account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components.sensor import SensorEntity, SensorStateClass
from homeassistant.core import callback
from homeassistant.helpers.dispatcher import async_dispatcher_connect

from . import const
from .engines.reward_engine import RewardEngine
from .entity import CoinVaultUserEntity
from .helpers.device_helpers import async_get_user_display_name
from .helpers.entity_helpers import get_event_signal

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .coordinator import CoinVaultDataCoordinator


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Set up sensors for Coin Vault integration."""
    coordinator: CoinVaultDataCoordinator = hass.data[const.DOMAIN][entry.entry_id][
        const.COORDINATOR
    ]
    known_users: set[str] = set()

    async def _async_add_user(user_id: str) -> None:
        if user_id in known_users:
            return
        known_users.add(user_id)
        user_name = await async_get_user_display_name(hass, user_id)
        const.LOGGER.debug("DEBUG: Adding sensors for user %s (%s)", user_id, user_name)
        async_add_entities(
            [
                CoinBalanceSensor(coordinator, entry, user_id, user_name),
                DailyStreakSensor(coordinator, entry, user_id, user_name),
                WatchViewsRemainingSensor(coordinator, entry, user_id, user_name),
            ]
        )

    for user_id in coordinator.users_data:
        await _async_add_user(user_id)

    @callback
    def _on_account_created(payload: dict[str, Any]) -> None:
        hass.async_create_task(_async_add_user(payload[const.ATTR_USER_ID]))

    entry.async_on_unload(
        async_dispatcher_connect(
            hass,
            get_event_signal(entry.entry_id, const.SIGNAL_SUFFIX_ACCOUNT_CREATED),
            _on_account_created,
        )
    )


# ------------------------------------------------------------------------------------------
class CoinBalanceSensor(CoinVaultUserEntity, SensorEntity):
    """Spendable coin balance from the user's balance mirror.

    Attributes expose the ledger total and whether it still matches the sum
    of its entries.
    """

    _sensor_key = const.SENSOR_KEY_COIN_BALANCE
    _attr_icon = const.DEFAULT_COINS_ICON
    _attr_native_unit_of_measurement = const.UNIT_COINS
    _attr_state_class = SensorStateClass.MEASUREMENT

    @property
    def native_value(self) -> int | None:
        """Return the mirror's coin balance."""
        if (data := self.user_data) is None:
            return None
        balance = data["account"]["balance"]
        return RewardEngine.coerce_count(balance.get(const.DATA_USER_COINS))

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose ledger totals."""
        if (data := self.user_data) is None:
            return {}
        summary = data["account"]["balance"].get(const.DATA_USER_REWARD_SUMMARY) or {}
        return {
            const.ATTR_USER_ID: self._user_id,
            const.ATTR_TOTAL_COINS: data["audit"]["total_coins"],
            const.ATTR_CLAIM_COUNT: data["audit"]["entry_count"],
            const.ATTR_LAST_FRAGMENT_ID: summary.get(
                const.DATA_SUMMARY_LAST_FRAGMENT_ID
            ),
            const.ATTR_LEDGER_CONSISTENT: data["audit"]["consistent"],
        }


# ------------------------------------------------------------------------------------------
class DailyStreakSensor(CoinVaultUserEntity, SensorEntity):
    """Current daily login streak."""

    _sensor_key = const.SENSOR_KEY_DAILY_STREAK
    _attr_icon = const.DEFAULT_STREAK_ICON
    _attr_state_class = SensorStateClass.MEASUREMENT

    @property
    def native_value(self) -> int | None:
        """Return the stored streak length."""
        if (data := self.user_data) is None:
            return None
        return data["daily_bonus"]["streak"]

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose the advisory daily bonus projection."""
        if (data := self.user_data) is None:
            return {}
        projection = data["daily_bonus"]
        return {
            const.ATTR_USER_ID: self._user_id,
            const.ATTR_AVAILABLE: projection["available"],
            const.ATTR_NEXT_STREAK: projection["next_streak"],
            const.ATTR_PROJECTED_REWARD: projection["reward"],
            const.ATTR_LAST_CLAIM_DATE: projection["last_claim_date"],
            const.ATTR_NEXT_ELIGIBLE_AT: projection["next_eligible_at"].isoformat(),
        }


# ------------------------------------------------------------------------------------------
class WatchViewsRemainingSensor(CoinVaultUserEntity, SensorEntity):
    """Watch-and-earn sessions left today."""

    _sensor_key = const.SENSOR_KEY_WATCH_VIEWS_REMAINING
    _attr_icon = const.DEFAULT_WATCH_ICON
    _attr_native_unit_of_measurement = const.UNIT_VIEWS

    @property
    def native_value(self) -> int | None:
        """Return today's remaining sessions."""
        if (data := self.user_data) is None:
            return None
        return data["watch_and_earn"]["remaining_today"]

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose cooldown state."""
        if (data := self.user_data) is None:
            return {}
        projection = data["watch_and_earn"]
        next_available_at = projection["next_available_at"]
        return {
            const.ATTR_USER_ID: self._user_id,
            const.ATTR_AVAILABLE: projection["available"],
            const.ATTR_PROJECTED_REWARD: projection["reward"],
            const.ATTR_MINUTES_REMAINING: projection["minutes_remaining"],
            const.ATTR_COOLDOWN_MINUTES: projection["cooldown_minutes"],
            const.ATTR_MAX_VIEWS_PER_DAY: projection["max_views_per_day"],
            const.ATTR_NEXT_AVAILABLE_AT: next_available_at.isoformat()
            if next_available_at
            else None,
        }
