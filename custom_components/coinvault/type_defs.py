"""Type definitions for Coin Vault data structures.

TypedDict is used for structures with keys fixed at design time (documents,
config objects, operation results). Documents are keyed by camelCase field
names because they mirror the stored document schema; results use snake_case
because they are returned to service callers.

IMPORTANT: This file must NOT import from coordinator.py, managers or
helpers to avoid circular dependencies. Only import typing machinery.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Stored values are coerced on read
(see RewardEngine.coerce_count); documents may be written by older versions
or by hand.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str  # Home Assistant user id
ClaimId = str  # "aurora-prism", "daily-2024-05-01", "watch-2024-05-01-2"
DayId = str  # Calendar day "YYYY-MM-DD" in the configured calendar time zone
ISODatetime = str  # ISO 8601 datetime string "2024-05-01T10:00:00+00:00"

Rarity = Literal["common", "rare", "epic", "legendary"]
RewardKind = Literal["fragment", "dailyBonus", "watchSession"]


# =============================================================================
# Catalog
# =============================================================================


class FragmentData(TypedDict):
    """A one-time claimable catalog entry.

    Created by: catalog.build_fragment()
    Stored in: config/coinRewards["fragments"]
    """

    id: str
    kind: RewardKind
    title: str
    description: str
    value: int  # rewardAmount, non-negative
    rarity: Rarity
    accent: str
    glow: str


class CashoutConfig(TypedDict):
    """Conversion parameters consumed by the payout collaborator."""

    minCoins: int
    exchangeRate: float
    currency: str


class CoinRewardConfig(TypedDict):
    """The admin-managed catalog document (config/coinRewards)."""

    fragments: list[FragmentData]
    cashout: CashoutConfig
    updatedAt: NotRequired[ISODatetime]


class DailyBonusConfig(TypedDict):
    """Daily login bonus schedule."""

    baseReward: int
    streakMultipliers: list[float]
    capStreak: int


class WatchAndEarnConfig(TypedDict):
    """Watch-and-earn session parameters."""

    rewardPerView: float
    cooldownMinutes: float
    maxViewsPerDay: int


class EngagementConfig(TypedDict):
    """Engagement reward configuration built from config entry options."""

    dailyBonus: DailyBonusConfig
    watchAndEarn: WatchAndEarnConfig


# =============================================================================
# Documents
# =============================================================================


class ClaimRecord(TypedDict):
    """One immutable ledger entry.

    Created by: RewardEngine.build_claim_record()
    Stored in: coinClaims/<user>["claimed"][claim_id]
    """

    fragmentId: ClaimId
    coins: int
    claimedAt: ISODatetime
    rarity: Rarity
    title: str
    description: NotRequired[str]
    type: NotRequired[str]


class ClaimLedgerDocument(TypedDict, total=False):
    """Per-user append-only claim ledger (coinClaims/<user>)."""

    totalCoins: int
    claimed: dict[ClaimId, ClaimRecord]
    updatedAt: ISODatetime


class RewardSummary(TypedDict):
    """Denormalized summary kept on the user profile."""

    totalCoins: int
    lastFragmentId: ClaimId
    lastUpdatedAt: ISODatetime


class BalanceMirrorDocument(TypedDict, total=False):
    """Spendable balance embedded in the user profile (users/<user>)."""

    coins: int
    rewardSummary: RewardSummary
    updatedAt: ISODatetime


class DailyBonusState(TypedDict, total=False):
    """Daily bonus sub-state of userEngagement/<user>."""

    lastClaimDate: DayId
    streak: int
    totalClaims: int
    lastReward: int
    lastClaimedAt: ISODatetime


class WatchAndEarnState(TypedDict, total=False):
    """Watch-and-earn sub-state of userEngagement/<user>."""

    lastWatchDate: DayId
    watchesToday: int
    totalViews: int
    lastReward: int
    lastWatchedAt: ISODatetime


class EngagementStateDocument(TypedDict, total=False):
    """Per-user engagement gating state (userEngagement/<user>)."""

    dailyBonus: DailyBonusState
    watchAndEarn: WatchAndEarnState
    updatedAt: ISODatetime


# =============================================================================
# Operation Results
# =============================================================================


class FragmentClaimResult(TypedDict):
    """Returned by RewardTransactionManager.async_claim_fragment()."""

    fragment: FragmentData
    coins_awarded: int
    total_coins: int


class DailyBonusClaimResult(TypedDict):
    """Returned by RewardTransactionManager.async_claim_daily_bonus()."""

    reward: int
    streak: int
    total_coins: int
    next_eligible_at: datetime


class WatchRewardClaimResult(TypedDict):
    """Returned by RewardTransactionManager.async_claim_watch_reward()."""

    reward: int
    total_coins: int
    remaining_views: int
    next_available_at: datetime


class HydratedClaim(TypedDict):
    """A ledger entry normalized for display."""

    claim_id: ClaimId
    coins: int
    rarity: str | None
    title: str | None
    type: str | None
    claimed_at: datetime | None


class AccountSnapshot(TypedDict):
    """Point-in-time read of a user's three documents."""

    user_id: UserId
    ledger: ClaimLedgerDocument
    balance: BalanceMirrorDocument
    engagement: EngagementStateDocument
    claims: list[HydratedClaim]


class LedgerAudit(TypedDict):
    """Result of RewardEngine.verify_ledger()."""

    total_coins: int
    entries_sum: int
    entry_count: int
    consistent: bool


class CashoutQuote(TypedDict):
    """Payout input computed from the balance mirror."""

    coins: int
    min_coins: int
    exchange_rate: float
    currency: str
    amount_minor: int
    eligible: bool


# =============================================================================
# Eligibility Projections
# =============================================================================


class DailyBonusProjection(TypedDict):
    """Advisory daily bonus view for sensors and dashboards."""

    streak: int
    next_streak: int
    available: bool
    reward: int
    last_claim_date: DayId | None
    next_eligible_at: datetime


class WatchAndEarnProjection(TypedDict):
    """Advisory watch-and-earn view for sensors and dashboards."""

    available: bool
    remaining_today: int
    reward: int
    cooldown_minutes: float
    max_views_per_day: int
    next_available_at: datetime | None
    minutes_remaining: int


# Generic document payload used by the store layer
Document = dict[str, Any]


# =============================================================================
# Coordinator Data
# =============================================================================


class UserAccountData(TypedDict):
    """Per-user entry of the coordinator's data dict."""

    account: AccountSnapshot
    audit: LedgerAudit
    daily_bonus: DailyBonusProjection
    watch_and_earn: WatchAndEarnProjection
