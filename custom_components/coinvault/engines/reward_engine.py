"""Reward Engine - Pure logic for coin awards and claim ledger arithmetic.

This engine provides stateless, pure Python functions for:
- Defensive numeric reads of stored document fields
- Streak progression and streak multiplier lookup
- Watch-and-earn counter reset and cooldown arithmetic
- Deterministic claim id derivation (exactly-once keys)
- Claim record construction and ledger/mirror write payloads
- Ledger audit, claim hydration and cashout quotes

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
Transactions and persistence belong in RewardTransactionManager.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import math
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_minutes_until, dt_parse, dt_to_iso

if TYPE_CHECKING:
    from ..type_defs import (
        CashoutConfig,
        CashoutQuote,
        ClaimRecord,
        DailyBonusConfig,
        DailyBonusState,
        Document,
        HydratedClaim,
        LedgerAudit,
        WatchAndEarnState,
    )


# =============================================================================
# EXCEPTIONS
# =============================================================================


class RewardClaimError(Exception):
    """Base class for rejected claims.

    Every subclass is raised from inside the transaction body before any
    write is staged, so a rejected claim never mutates a document.

    Attributes:
        user_id: The user the claim was made for
        claim_id: The ledger key the claim would have used (if known)
        translation_key: The TRANS_KEY_* constant for the user-facing message
        placeholders: Values for the translation string
    """

    translation_key: str = const.TRANS_KEY_ERROR_ALREADY_CLAIMED
    is_duplicate: bool = False

    def __init__(
        self,
        message: str,
        *,
        user_id: str,
        claim_id: str | None = None,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize RewardClaimError."""
        self.user_id = user_id
        self.claim_id = claim_id
        self.placeholders = placeholders or {}
        super().__init__(message)


class NotFoundError(RewardClaimError):
    """Raised when a fragment id is not in the catalog."""

    translation_key = const.TRANS_KEY_ERROR_FRAGMENT_NOT_FOUND

    def __init__(self, user_id: str, fragment_id: str) -> None:
        """Initialize NotFoundError."""
        self.fragment_id = fragment_id
        super().__init__(
            f"Fragment '{fragment_id}' is no longer available",
            user_id=user_id,
            claim_id=fragment_id,
            placeholders={"fragment_id": fragment_id},
        )


class AlreadyClaimedError(RewardClaimError):
    """Raised when the claim id already exists in the user's ledger.

    This is the idempotency guard. Callers should treat it as a successful
    no-op from the user's perspective.
    """

    translation_key = const.TRANS_KEY_ERROR_ALREADY_CLAIMED
    is_duplicate = True

    def __init__(self, user_id: str, claim_id: str) -> None:
        """Initialize AlreadyClaimedError."""
        super().__init__(
            f"Claim '{claim_id}' already recorded for user {user_id}",
            user_id=user_id,
            claim_id=claim_id,
            placeholders={"claim_id": claim_id},
        )


class AlreadyClaimedTodayError(AlreadyClaimedError):
    """Raised when the daily bonus was already claimed on this calendar day."""

    translation_key = const.TRANS_KEY_ERROR_ALREADY_CLAIMED_TODAY

    def __init__(self, user_id: str, day_id: str) -> None:
        """Initialize AlreadyClaimedTodayError."""
        self.day_id = day_id
        super().__init__(user_id, RewardEngine.daily_claim_id(day_id))
        self.placeholders = {"day_id": day_id}


class DailyLimitReachedError(RewardClaimError):
    """Raised when the watch-and-earn allowance for the day is used up."""

    translation_key = const.TRANS_KEY_ERROR_DAILY_LIMIT_REACHED

    def __init__(self, user_id: str, max_views_per_day: int) -> None:
        """Initialize DailyLimitReachedError."""
        self.max_views_per_day = max_views_per_day
        super().__init__(
            f"Daily watch limit of {max_views_per_day} reached for user {user_id}",
            user_id=user_id,
            placeholders={"max_views": str(max_views_per_day)},
        )


class CooldownActiveError(RewardClaimError):
    """Raised when a watch claim arrives before the cooldown elapsed.

    Attributes:
        minutes_remaining: Whole minutes until the next claim is allowed
        available_at: Exact time the cooldown ends
    """

    translation_key = const.TRANS_KEY_ERROR_COOLDOWN_ACTIVE

    def __init__(
        self, user_id: str, minutes_remaining: int, available_at: datetime
    ) -> None:
        """Initialize CooldownActiveError."""
        self.minutes_remaining = minutes_remaining
        self.available_at = available_at
        super().__init__(
            f"Next watch available in {minutes_remaining} minute(s)",
            user_id=user_id,
            placeholders={"minutes": str(minutes_remaining)},
        )


# =============================================================================
# REWARD ENGINE
# =============================================================================


class RewardEngine:
    """Pure logic engine for reward amounts, eligibility and ledger payloads.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    # -------------------------------------------------------------------------
    # Numeric helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def coerce_count(value: Any) -> int:
        """Read a stored counter or coin amount as a non-negative int.

        Missing, non-numeric, boolean, NaN and infinite values read as 0.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        return int(value)

    @staticmethod
    def round_coins(value: float) -> int:
        """Round a coin amount to the nearest integer, halves rounding up.

        Python's round() uses banker's rounding (round(2.5) == 2); coin
        amounts always round half up (2.5 -> 3).
        """
        return math.floor(value + 0.5)

    # -------------------------------------------------------------------------
    # Daily bonus
    # -------------------------------------------------------------------------

    @staticmethod
    def multiplier_index(config: DailyBonusConfig, streak: int) -> int:
        """Return the multiplier table index for a streak length.

        The streak is capped at capStreak, then mapped to index streak - 1 and
        clamped into the table bounds.
        """
        multipliers = config[const.CFG_STREAK_MULTIPLIERS]
        capped = min(streak, config[const.CFG_CAP_STREAK])
        return min(len(multipliers) - 1, max(0, capped - 1))

    @staticmethod
    def compute_daily_bonus_reward(config: DailyBonusConfig, streak: int) -> int:
        """Compute the daily bonus for a streak length.

        Example:
            baseReward=120, multipliers=[1, 1.2, ...]: streak 2 -> 144
        """
        multipliers = config[const.CFG_STREAK_MULTIPLIERS]
        multiplier = 1.0
        if multipliers:
            multiplier = float(multipliers[RewardEngine.multiplier_index(config, streak)])
        return RewardEngine.round_coins(config[const.CFG_BASE_REWARD] * multiplier)

    @staticmethod
    def next_streak(state: DailyBonusState, yesterday_id: str) -> int:
        """Return the streak a claim made today would produce.

        Continues the streak only when the last claim was exactly yesterday;
        any gap (including no previous claim) restarts at 1.
        """
        if state.get(const.DATA_DAILY_LAST_CLAIM_DATE) == yesterday_id:
            return RewardEngine.coerce_count(state.get(const.DATA_DAILY_STREAK)) + 1
        return 1

    @staticmethod
    def daily_claim_id(day_id: str) -> str:
        """Return the ledger key for a day's login bonus."""
        return f"{const.CLAIM_ID_PREFIX_DAILY}{day_id}"

    # -------------------------------------------------------------------------
    # Watch and earn
    # -------------------------------------------------------------------------

    @staticmethod
    def watches_today(state: WatchAndEarnState, today_id: str) -> int:
        """Return today's watch count, treating a stale day as zero.

        This is the implicit midnight reset: the stored counter only counts
        while lastWatchDate is today.
        """
        if state.get(const.DATA_WATCH_LAST_WATCH_DATE) != today_id:
            return 0
        return RewardEngine.coerce_count(state.get(const.DATA_WATCH_WATCHES_TODAY))

    @staticmethod
    def cooldown_ends_at(
        state: WatchAndEarnState, cooldown_minutes: float
    ) -> datetime | None:
        """Return when the cooldown after the last watch ends, if any."""
        last_watched_at = dt_parse(state.get(const.DATA_WATCH_LAST_WATCHED_AT))
        if last_watched_at is None:
            return None
        return last_watched_at + timedelta(minutes=cooldown_minutes)

    @staticmethod
    def cooldown_minutes_remaining(
        state: WatchAndEarnState, cooldown_minutes: float, now: datetime
    ) -> int:
        """Return whole minutes left on the cooldown (0 when elapsed)."""
        ends_at = RewardEngine.cooldown_ends_at(state, cooldown_minutes)
        if ends_at is None:
            return 0
        return dt_minutes_until(ends_at, now)

    @staticmethod
    def watch_claim_id(day_id: str, sequence: int) -> str:
        """Return the ledger key for the n-th watch session of a day."""
        return f"{const.CLAIM_ID_PREFIX_WATCH}{day_id}-{sequence}"

    # -------------------------------------------------------------------------
    # Ledger payloads
    # -------------------------------------------------------------------------

    @staticmethod
    def build_claim_record(
        claim_id: str,
        coins: int,
        claimed_at: datetime,
        *,
        rarity: str,
        title: str,
        description: str | None = None,
        claim_type: str | None = None,
    ) -> ClaimRecord:
        """Create an immutable ledger entry."""
        record: ClaimRecord = {
            const.DATA_CLAIM_FRAGMENT_ID: claim_id,
            const.DATA_CLAIM_COINS: coins,
            const.DATA_CLAIM_CLAIMED_AT: dt_to_iso(claimed_at),
            const.DATA_CLAIM_RARITY: rarity,  # type: ignore[typeddict-item]
            const.DATA_CLAIM_TITLE: title,
        }
        if description:
            record[const.DATA_CLAIM_DESCRIPTION] = description
        if claim_type:
            record[const.DATA_CLAIM_TYPE] = claim_type
        return record

    @staticmethod
    def build_award_writes(
        ledger: Document,
        mirror: Document,
        record: ClaimRecord,
        now: datetime,
    ) -> tuple[Document, Document, int]:
        """Build the ledger and balance mirror merge payloads for one award.

        Both payloads carry the same delta (record["coins"]) so the mirror can
        never drift from the ledger.

        Args:
            ledger: Current coinClaims/<user> snapshot ({} when absent)
            mirror: Current users/<user> snapshot ({} when absent)
            record: The new claim record
            now: Commit timestamp

        Returns:
            (ledger_patch, mirror_patch, next_total_coins)
        """
        claim_id = record[const.DATA_CLAIM_FRAGMENT_ID]
        delta = record[const.DATA_CLAIM_COINS]
        now_iso = dt_to_iso(now)

        next_total = RewardEngine.coerce_count(
            ledger.get(const.DATA_LEDGER_TOTAL_COINS)
        ) + delta
        next_balance = RewardEngine.coerce_count(mirror.get(const.DATA_USER_COINS)) + delta

        ledger_patch: Document = {
            const.DATA_LEDGER_TOTAL_COINS: next_total,
            const.DATA_LEDGER_CLAIMED: {claim_id: dict(record)},
            const.DATA_UPDATED_AT: now_iso,
        }
        mirror_patch: Document = {
            const.DATA_USER_COINS: next_balance,
            const.DATA_UPDATED_AT: now_iso,
            const.DATA_USER_REWARD_SUMMARY: {
                const.DATA_SUMMARY_TOTAL_COINS: next_total,
                const.DATA_SUMMARY_LAST_FRAGMENT_ID: claim_id,
                const.DATA_SUMMARY_LAST_UPDATED_AT: now_iso,
            },
        }
        return ledger_patch, mirror_patch, next_total

    @staticmethod
    def claimed_entries(ledger: Document) -> dict[str, Any]:
        """Return the ledger's claimed map, tolerating malformed documents."""
        claimed = ledger.get(const.DATA_LEDGER_CLAIMED)
        return claimed if isinstance(claimed, dict) else {}

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @staticmethod
    def verify_ledger(ledger: Document) -> LedgerAudit:
        """Check that totalCoins equals the sum of all claimed entries."""
        entries = RewardEngine.claimed_entries(ledger)
        entries_sum = sum(
            RewardEngine.coerce_count(entry.get(const.DATA_CLAIM_COINS))
            for entry in entries.values()
            if isinstance(entry, dict)
        )
        total = RewardEngine.coerce_count(ledger.get(const.DATA_LEDGER_TOTAL_COINS))
        return {
            "total_coins": total,
            "entries_sum": entries_sum,
            "entry_count": len(entries),
            "consistent": total == entries_sum,
        }

    @staticmethod
    def hydrate_claims(ledger: Document) -> list[HydratedClaim]:
        """Normalize ledger entries for display, oldest first.

        Entries without a string fragmentId or numeric coins are skipped.
        Entries with an unreadable claimedAt sort last.
        """
        hydrated: list[HydratedClaim] = []
        for entry in RewardEngine.claimed_entries(ledger).values():
            if not isinstance(entry, dict):
                continue
            claim_id = entry.get(const.DATA_CLAIM_FRAGMENT_ID)
            coins = entry.get(const.DATA_CLAIM_COINS)
            if not isinstance(claim_id, str) or isinstance(coins, bool):
                continue
            if not isinstance(coins, (int, float)):
                continue
            rarity = entry.get(const.DATA_CLAIM_RARITY)
            title = entry.get(const.DATA_CLAIM_TITLE)
            claim_type = entry.get(const.DATA_CLAIM_TYPE)
            hydrated.append(
                {
                    "claim_id": claim_id,
                    "coins": int(coins),
                    "rarity": rarity if isinstance(rarity, str) else None,
                    "title": title if isinstance(title, str) else None,
                    "type": claim_type if isinstance(claim_type, str) else None,
                    "claimed_at": dt_parse(entry.get(const.DATA_CLAIM_CLAIMED_AT)),
                }
            )

        hydrated.sort(
            key=lambda claim: (
                claim["claimed_at"] is None,
                claim["claimed_at"] or datetime.min,
                claim["claim_id"],
            )
        )
        return hydrated

    @staticmethod
    def quote_cashout(coins: int, cashout: CashoutConfig) -> CashoutQuote:
        """Compute the payout amount for a coin balance.

        The amount is expressed in the currency's minor unit, the form payment
        gateways expect. Eligibility requires the configured minimum balance
        and a positive amount.
        """
        exchange_rate = float(cashout[const.DATA_CASHOUT_EXCHANGE_RATE])
        min_coins = int(cashout[const.DATA_CASHOUT_MIN_COINS])
        amount_minor = RewardEngine.round_coins(
            coins * exchange_rate * const.CASHOUT_MINOR_UNIT_FACTOR
        )
        return {
            "coins": coins,
            "min_coins": min_coins,
            "exchange_rate": exchange_rate,
            "currency": cashout[const.DATA_CASHOUT_CURRENCY],
            "amount_minor": amount_minor,
            "eligible": coins >= min_coins and amount_minor > 0,
        }
