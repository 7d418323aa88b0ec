# File: helpers/entity_helpers.py
"""Entity and signal helper functions for Coin Vault.

All functions here produce identifiers that Home Assistant registries or the
dispatcher key on.
"""

from __future__ import annotations

from .. import const

# ==============================================================================
# Event Signal Helpers (Manager Communication)
# ==============================================================================


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Each config entry gets its own signal namespace so that listeners of one
    instance never see awards made by another.

    Format: 'coinvault_{entry_id}_{suffix}'

    Example:
        >>> get_event_signal("abc123", const.SIGNAL_SUFFIX_COINS_AWARDED)
        'coinvault_abc123_coins_awarded'
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


# ==============================================================================
# Unique IDs
# ==============================================================================


def build_user_unique_id(entry_id: str, user_id: str, sensor_key: str) -> str:
    """Return the unique_id of a per-user entity.

    Example:
        >>> build_user_unique_id("abc123", "u1", const.SENSOR_KEY_COIN_BALANCE)
        'abc123_u1_coin_balance'
    """
    return f"{entry_id}_{user_id}_{sensor_key}"
