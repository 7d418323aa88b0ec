"""Engine modules for Coin Vault integration.

Contains pure computation engines:
- reward_engine: Award amounts, claim ids, ledger payloads and audits
- eligibility_engine: Advisory daily bonus and watch-and-earn projections
"""

# Use relative imports within package to avoid mypy module resolution issues
from .eligibility_engine import EligibilityEngine
from .reward_engine import (
    AlreadyClaimedError,
    AlreadyClaimedTodayError,
    CooldownActiveError,
    DailyLimitReachedError,
    NotFoundError,
    RewardClaimError,
    RewardEngine,
)

__all__ = [
    "AlreadyClaimedError",
    "AlreadyClaimedTodayError",
    "CooldownActiveError",
    "DailyLimitReachedError",
    "EligibilityEngine",
    "NotFoundError",
    "RewardClaimError",
    "RewardEngine",
]
