"""Tests for EligibilityEngine - advisory projections, no HA fixtures needed."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from custom_components.coinvault import const
from custom_components.coinvault.engines.eligibility_engine import EligibilityEngine

UTC_ZONE = ZoneInfo("UTC")
T0 = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)

DAILY_CONFIG = {
    const.CFG_BASE_REWARD: 120,
    const.CFG_STREAK_MULTIPLIERS: [1, 1.2, 1.5, 1.8, 2, 2.25, 2.5],
    const.CFG_CAP_STREAK: 14,
}
WATCH_CONFIG = {
    const.CFG_REWARD_PER_VIEW: 80,
    const.CFG_COOLDOWN_MINUTES: 30,
    const.CFG_MAX_VIEWS_PER_DAY: 2,
}


class TestDailyBonusProjection:
    """Test the daily bonus projection."""

    def test_fresh_user(self) -> None:
        """A user who never claimed can claim day 1 now."""
        projection = EligibilityEngine.project_daily_bonus(
            {}, DAILY_CONFIG, T0, UTC_ZONE
        )
        assert projection["available"] is True
        assert projection["streak"] == 0
        assert projection["next_streak"] == 1
        assert projection["reward"] == 120
        assert projection["last_claim_date"] is None
        assert projection["next_eligible_at"] == T0

    def test_claimed_yesterday(self) -> None:
        """Tomorrow's streak and reward are shown when yesterday was claimed."""
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-04-30",
            const.DATA_DAILY_STREAK: 1,
        }
        projection = EligibilityEngine.project_daily_bonus(
            state, DAILY_CONFIG, T0, UTC_ZONE
        )
        assert projection["available"] is True
        assert projection["next_streak"] == 2
        assert projection["reward"] == 144

    def test_claimed_today(self) -> None:
        """After today's claim the bonus reopens at the next local midnight."""
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-05-01",
            const.DATA_DAILY_STREAK: 2,
        }
        projection = EligibilityEngine.project_daily_bonus(
            state, DAILY_CONFIG, T0, UTC_ZONE
        )
        assert projection["available"] is False
        assert projection["streak"] == 2
        assert projection["reward"] == 144
        assert projection["next_eligible_at"] == datetime(2024, 5, 2, tzinfo=UTC_ZONE)

    def test_calendar_time_zone_decides_the_day(self) -> None:
        """Day ids come from the calendar time zone, not UTC."""
        kolkata = ZoneInfo("Asia/Kolkata")
        # 2024-05-01 20:00 UTC is already 2024-05-02 in Kolkata
        now = datetime(2024, 5, 1, 20, 0, tzinfo=UTC)
        state = {
            const.DATA_DAILY_LAST_CLAIM_DATE: "2024-05-01",
            const.DATA_DAILY_STREAK: 1,
        }
        projection = EligibilityEngine.project_daily_bonus(
            state, DAILY_CONFIG, now, kolkata
        )
        assert projection["available"] is True
        assert projection["next_streak"] == 2


class TestWatchAndEarnProjection:
    """Test the watch-and-earn projection."""

    def test_fresh_user(self) -> None:
        """A fresh user can watch now with the full allowance."""
        projection = EligibilityEngine.project_watch_and_earn(
            {}, WATCH_CONFIG, T0, UTC_ZONE
        )
        assert projection["available"] is True
        assert projection["remaining_today"] == 2
        assert projection["reward"] == 80
        assert projection["next_available_at"] == T0
        assert projection["minutes_remaining"] == 0

    def test_cooldown_pending(self) -> None:
        """A recent session projects the cooldown end."""
        state = {
            const.DATA_WATCH_LAST_WATCH_DATE: "2024-05-01",
            const.DATA_WATCH_WATCHES_TODAY: 1,
            const.DATA_WATCH_LAST_WATCHED_AT: T0.isoformat(),
        }
        now = T0 + timedelta(minutes=5)
        projection = EligibilityEngine.project_watch_and_earn(
            state, WATCH_CONFIG, now, UTC_ZONE
        )
        assert projection["available"] is False
        assert projection["remaining_today"] == 1
        assert projection["next_available_at"] == T0 + timedelta(minutes=30)
        assert projection["minutes_remaining"] == 25

    def test_allowance_used_up(self) -> None:
        """With no sessions left there is no next availability today."""
        state = {
            const.DATA_WATCH_LAST_WATCH_DATE: "2024-05-01",
            const.DATA_WATCH_WATCHES_TODAY: 2,
            const.DATA_WATCH_LAST_WATCHED_AT: T0.isoformat(),
        }
        projection = EligibilityEngine.project_watch_and_earn(
            state, WATCH_CONFIG, T0 + timedelta(hours=2), UTC_ZONE
        )
        assert projection["available"] is False
        assert projection["remaining_today"] == 0
        assert projection["next_available_at"] is None

    def test_new_day_resets_allowance(self) -> None:
        """Yesterday's count does not reduce today's allowance."""
        state = {
            const.DATA_WATCH_LAST_WATCH_DATE: "2024-04-30",
            const.DATA_WATCH_WATCHES_TODAY: 2,
            const.DATA_WATCH_LAST_WATCHED_AT: (T0 - timedelta(hours=12)).isoformat(),
        }
        projection = EligibilityEngine.project_watch_and_earn(
            state, WATCH_CONFIG, T0, UTC_ZONE
        )
        assert projection["available"] is True
        assert projection["remaining_today"] == 2
