"""Tests for RewardEngine - pure logic, no HA fixtures needed."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from custom_components.coinvault import const
from custom_components.coinvault.engines.reward_engine import (
    AlreadyClaimedError,
    AlreadyClaimedTodayError,
    CooldownActiveError,
    NotFoundError,
    RewardEngine,
)

DAILY_CONFIG = {
    const.CFG_BASE_REWARD: 120,
    const.CFG_STREAK_MULTIPLIERS: [1, 1.2, 1.5, 1.8, 2, 2.25, 2.5],
    const.CFG_CAP_STREAK: 14,
}

T0 = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


# =============================================================================
# TEST: NUMERIC HELPERS
# =============================================================================


class TestNumericHelpers:
    """Test stored-value coercion and rounding."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (5, 5),
            (7.9, 7),
            (None, 0),
            ("12", 0),
            (True, 0),
            (float("nan"), 0),
            (float("inf"), 0),
        ],
    )
    def test_coerce_count(self, value, expected) -> None:
        """Non-numeric, boolean and non-finite values read as 0."""
        assert RewardEngine.coerce_count(value) == expected

    def test_round_coins_half_up(self) -> None:
        """Halves round up, unlike Python's round()."""
        assert RewardEngine.round_coins(2.5) == 3
        assert RewardEngine.round_coins(0.5) == 1
        assert RewardEngine.round_coins(143.99999999999997) == 144
        assert RewardEngine.round_coins(2.49) == 2


# =============================================================================
# TEST: DAILY BONUS
# =============================================================================


class TestDailyBonus:
    """Test streak progression and reward calculation."""

    def test_first_two_days(self) -> None:
        """Day 1 pays the base reward, day 2 applies the 1.2 multiplier."""
        assert RewardEngine.compute_daily_bonus_reward(DAILY_CONFIG, 1) == 120
        assert RewardEngine.compute_daily_bonus_reward(DAILY_CONFIG, 2) == 144

    def test_multiplier_clamps_to_last_entry(self) -> None:
        """Streaks past the table length use the last multiplier."""
        assert RewardEngine.multiplier_index(DAILY_CONFIG, 7) == 6
        assert RewardEngine.multiplier_index(DAILY_CONFIG, 30) == 6
        assert RewardEngine.compute_daily_bonus_reward(DAILY_CONFIG, 30) == 300

    def test_cap_below_table_length(self) -> None:
        """capStreak limits the index before the table bound does."""
        config = {**DAILY_CONFIG, const.CFG_CAP_STREAK: 3}
        assert RewardEngine.compute_daily_bonus_reward(config, 10) == 180

    def test_zero_streak_uses_first_multiplier(self) -> None:
        """A streak of 0 never indexes before the table."""
        assert RewardEngine.multiplier_index(DAILY_CONFIG, 0) == 0

    def test_empty_multiplier_table(self) -> None:
        """Without multipliers the base reward is paid."""
        config = {**DAILY_CONFIG, const.CFG_STREAK_MULTIPLIERS: []}
        assert RewardEngine.compute_daily_bonus_reward(config, 5) == 120

    def test_next_streak_continues_from_yesterday(self) -> None:
        """A claim yesterday extends the streak."""
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-04-30",
            const.DATA_DAILY_STREAK: 4,
        }
        assert RewardEngine.next_streak(state, "2024-04-30") == 5

    def test_next_streak_resets_after_gap(self) -> None:
        """Any gap restarts the streak at 1."""
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-04-28",
            const.DATA_DAILY_STREAK: 4,
        }
        assert RewardEngine.next_streak(state, "2024-04-30") == 1
        assert RewardEngine.next_streak({}, "2024-04-30") == 1

    def test_next_streak_tolerates_malformed_counter(self) -> None:
        """A corrupted streak counter reads as 0."""
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-04-30",
            const.DATA_DAILY_STREAK: "lots",
        }
        assert RewardEngine.next_streak(state, "2024-04-30") == 1

    def test_daily_claim_id(self) -> None:
        """Daily bonus ledger keys are derived from the day id."""
        assert RewardEngine.daily_claim_id("2024-05-01") == "daily-2024-05-01"


# =============================================================================
# TEST: WATCH AND EARN
# =============================================================================


class TestWatchAndEarn:
    """Test the implicit daily reset and cooldown arithmetic."""

    def test_watches_today_counts_only_today(self) -> None:
        """A counter from an earlier day reads as zero."""
        state = {
            const.DATA_WATCH_LAST_WATCH_DATE: "2024-04-30",
            const.DATA_WATCH_WATCHES_TODAY: 5,
        }
        assert RewardEngine.watches_today(state, "2024-05-01") == 0
        assert RewardEngine.watches_today(state, "2024-04-30") == 5

    def test_cooldown_without_previous_watch(self) -> None:
        """No previous session means no cooldown."""
        assert RewardEngine.cooldown_ends_at({}, 30) is None
        assert RewardEngine.cooldown_minutes_remaining({}, 30, T0) == 0

    def test_cooldown_minutes_round_up(self) -> None:
        """Partial minutes count as a full minute."""
        state = {const.DATA_WATCH_LAST_WATCHED_AT: T0.isoformat()}
        now = T0 + timedelta(minutes=10, seconds=30)
        assert RewardEngine.cooldown_ends_at(state, 30) == T0 + timedelta(minutes=30)
        assert RewardEngine.cooldown_minutes_remaining(state, 30, now) == 20

    def test_cooldown_elapsed(self) -> None:
        """After the cooldown nothing remains."""
        state = {const.DATA_WATCH_LAST_WATCHED_AT: T0.isoformat()}
        now = T0 + timedelta(minutes=31)
        assert RewardEngine.cooldown_minutes_remaining(state, 30, now) == 0

    def test_unparseable_timestamp_is_ignored(self) -> None:
        """A malformed lastWatchedAt does not block claims."""
        state = {const.DATA_WATCH_LAST_WATCHED_AT: "yesterday-ish"}
        assert RewardEngine.cooldown_ends_at(state, 30) is None

    def test_watch_claim_id(self) -> None:
        """Watch ledger keys include the day and the session number."""
        assert RewardEngine.watch_claim_id("2024-05-01", 2) == "watch-2024-05-01-2"


# =============================================================================
# TEST: LEDGER PAYLOADS
# =============================================================================


class TestLedgerPayloads:
    """Test claim records, award writes and ledger audits."""

    def _record(self, claim_id: str = "aurora-prism", coins: int = 120):
        return RewardEngine.build_claim_record(
            claim_id,
            coins,
            T0,
            rarity=const.RARITY_RARE,
            title="Aurora Prism",
            claim_type=const.CLAIM_TYPE_FRAGMENT,
        )

    def test_claim_record_fields(self) -> None:
        """Records carry id, coins, UTC timestamp and display fields."""
        record = self._record()
        assert record[const.DATA_CLAIM_FRAGMENT_ID] == "aurora-prism"
        assert record[const.DATA_CLAIM_COINS] == 120
        assert record[const.DATA_CLAIM_CLAIMED_AT] == "2024-05-01T10:00:00+00:00"
        assert record[const.DATA_CLAIM_TYPE] == const.CLAIM_TYPE_FRAGMENT
        assert const.DATA_CLAIM_DESCRIPTION not in record

    def test_award_writes_share_delta(self) -> None:
        """Ledger total and mirror balance move by the same delta."""
        ledger = {const.DATA_LEDGER_TOTAL_COINS: 200}
        mirror = {const.DATA_USER_COINS: 50}
        ledger_patch, mirror_patch, total = RewardEngine.build_award_writes(
            ledger, mirror, self._record(), T0
        )
        assert total == 320
        assert ledger_patch[const.DATA_LEDGER_TOTAL_COINS] == 320
        assert ledger_patch[const.DATA_LEDGER_CLAIMED]["aurora-prism"][
            const.DATA_CLAIM_COINS
        ] == 120
        assert mirror_patch[const.DATA_USER_COINS] == 170
        summary = mirror_patch[const.DATA_USER_REWARD_SUMMARY]
        assert summary[const.DATA_SUMMARY_TOTAL_COINS] == 320
        assert summary[const.DATA_SUMMARY_LAST_FRAGMENT_ID] == "aurora-prism"

    def test_award_writes_on_empty_documents(self) -> None:
        """Absent documents start from zero."""
        _, mirror_patch, total = RewardEngine.build_award_writes(
            {}, {}, self._record(coins=80), T0
        )
        assert total == 80
        assert mirror_patch[const.DATA_USER_COINS] == 80

    def test_verify_ledger(self) -> None:
        """The audit compares totalCoins with the sum of entries."""
        ledger = {
            const.DATA_LEDGER_TOTAL_COINS: 200,
            const.DATA_LEDGER_CLAIMED: {
                "a": {const.DATA_CLAIM_COINS: 120},
                "b": {const.DATA_CLAIM_COINS: 80},
            },
        }
        audit = RewardEngine.verify_ledger(ledger)
        assert audit["consistent"] is True
        assert audit["entry_count"] == 2

        ledger[const.DATA_LEDGER_TOTAL_COINS] = 999
        assert RewardEngine.verify_ledger(ledger)["consistent"] is False

    def test_hydrate_claims_sorted_and_filtered(self) -> None:
        """Valid entries are returned oldest first; malformed ones are dropped."""
        ledger = {
            const.DATA_LEDGER_CLAIMED: {
                "late": {
                    const.DATA_CLAIM_FRAGMENT_ID: "late",
                    const.DATA_CLAIM_COINS: 10,
                    const.DATA_CLAIM_CLAIMED_AT: (T0 + timedelta(hours=1)).isoformat(),
                },
                "early": {
                    const.DATA_CLAIM_FRAGMENT_ID: "early",
                    const.DATA_CLAIM_COINS: 20,
                    const.DATA_CLAIM_CLAIMED_AT: T0.isoformat(),
                },
                "undated": {
                    const.DATA_CLAIM_FRAGMENT_ID: "undated",
                    const.DATA_CLAIM_COINS: 5,
                },
                "broken": {const.DATA_CLAIM_FRAGMENT_ID: "broken"},
                "junk": "not-a-record",
            }
        }
        claims = RewardEngine.hydrate_claims(ledger)
        assert [claim["claim_id"] for claim in claims] == ["early", "late", "undated"]
        assert claims[0]["claimed_at"] == T0

    def test_quote_cashout(self) -> None:
        """Amounts are in minor units and gated by the minimum balance."""
        cashout = {
            const.DATA_CASHOUT_MIN_COINS: 1000,
            const.DATA_CASHOUT_EXCHANGE_RATE: 0.5,
            const.DATA_CASHOUT_CURRENCY: "INR",
        }
        quote = RewardEngine.quote_cashout(1200, cashout)
        assert quote["amount_minor"] == 60000
        assert quote["eligible"] is True
        assert RewardEngine.quote_cashout(999, cashout)["eligible"] is False


# =============================================================================
# TEST: EXCEPTIONS
# =============================================================================


class TestExceptions:
    """Test exception metadata used by the service layer."""

    def test_duplicates_are_flagged(self) -> None:
        """Both already-claimed errors are duplicates."""
        assert AlreadyClaimedError("u", "aurora-prism").is_duplicate
        today = AlreadyClaimedTodayError("u", "2024-05-01")
        assert today.is_duplicate
        assert today.claim_id == "daily-2024-05-01"
        assert today.translation_key == const.TRANS_KEY_ERROR_ALREADY_CLAIMED_TODAY

    def test_rejections_carry_placeholders(self) -> None:
        """Rejections expose translation placeholders."""
        not_found = NotFoundError("u", "ghost")
        assert not not_found.is_duplicate
        assert not_found.placeholders == {"fragment_id": "ghost"}

        cooldown = CooldownActiveError("u", 12, T0)
        assert cooldown.placeholders == {"minutes": "12"}
        assert cooldown.available_at == T0
