"""Base manager class for Coin Vault managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_send

from .. import const
from ..helpers.entity_helpers import get_event_signal

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


class BaseManager(ABC):
    """Base class for Coin Vault managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)

    Listeners (coordinator, sensor platform) subscribe to the same signals
    with get_event_signal() and clean up through their config entry.

    Subclasses must implement:
    - async_setup(): Initialize state after the store is loaded
    """

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry id that scopes emitted signals
        """
        self.hass = hass
        self.entry_id = entry_id

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_COINS_AWARDED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)

        Example:
            self.emit(
                const.SIGNAL_SUFFIX_COINS_AWARDED,
                user_id=user_id,
                claim_id="aurora-prism",
                delta=120,
                total_coins=320,
                balance=170,
                source=const.CLAIM_TYPE_FRAGMENT,
            )
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)

    @abstractmethod
    async def async_setup(self) -> None:
        """Set up the manager.

        Called once during config entry setup, after the store is loaded.
        """
