# File: utils/__init__.py
"""Pure Python utilities for Coin Vault.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Calendar day identifiers, timestamp parsing, cooldown arithmetic
"""

from . import dt_utils

__all__ = ["dt_utils"]
