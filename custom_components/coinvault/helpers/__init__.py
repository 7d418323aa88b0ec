# File: helpers/__init__.py
"""Home Assistant-bound helper functions for Coin Vault.

This module contains functions that REQUIRE Home Assistant dependencies.

NOTE: Functions that need `hass` object belong here, NOT in utils/.

Submodules:
    - entity_helpers: Instance-scoped dispatcher signals, entity unique ids
    - device_helpers: DeviceInfo construction and user display names
"""

from . import device_helpers, entity_helpers

__all__ = [
    "device_helpers",
    "entity_helpers",
]
