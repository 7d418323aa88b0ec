"""Manager modules for Coin Vault integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager
from .transaction_manager import RewardTransactionManager

__all__ = [
    "BaseManager",
    "RewardTransactionManager",
]
