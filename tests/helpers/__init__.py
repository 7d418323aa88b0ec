"""Test helpers for Coin Vault integration tests.

    from tests.helpers import T0, TEST_ENTRY_ID, TEST_USER_ID
"""

from .constants import T0, TEST_ENTRY_ID, TEST_USER_ID

__all__ = ["T0", "TEST_ENTRY_ID", "TEST_USER_ID"]
