"""Base entity classes for Coin Vault integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .coordinator import CoinVaultDataCoordinator
from .helpers.device_helpers import create_user_device_info
from .helpers.entity_helpers import build_user_unique_id

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

    from .type_defs import UserAccountData


class CoinVaultUserEntity(CoordinatorEntity[CoinVaultDataCoordinator]):
    """Base entity for one user's coin account.

    Subclasses set _sensor_key, which doubles as the translation key and
    the unique_id suffix.
    """

    _attr_has_entity_name = True
    _sensor_key: str

    def __init__(
        self,
        coordinator: CoinVaultDataCoordinator,
        entry: ConfigEntry,
        user_id: str,
        user_name: str,
    ) -> None:
        """Initialize the entity.

        Args:
            coordinator: CoinVaultDataCoordinator instance for data access.
            entry: ConfigEntry for this integration instance.
            user_id: Home Assistant user id owning the account.
            user_name: Display name of the user.
        """
        super().__init__(coordinator)
        self._user_id = user_id
        self._user_name = user_name
        self._attr_translation_key = self._sensor_key
        self._attr_unique_id = build_user_unique_id(
            entry.entry_id, user_id, self._sensor_key
        )
        self._attr_device_info = create_user_device_info(user_id, user_name, entry)

    @property
    def user_data(self) -> UserAccountData | None:
        """This user's snapshot from the last coordinator refresh."""
        return self.coordinator.users_data.get(self._user_id)

    @property
    def available(self) -> bool:
        """Available while the coordinator has a snapshot for the user."""
        return super().available and self.user_data is not None
