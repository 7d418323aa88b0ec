"""Eligibility Engine - Advisory projections of engagement reward availability.

Given possibly stale snapshots of a user's engagement state, this engine
computes what dashboards show: whether the daily bonus or a watch session is
available right now, the next streak number, the projected reward and the
cooldown countdown.

ADVISORY ONLY: nothing computed here authorizes a claim. The transaction
manager re-validates every condition inside the transaction at claim time.

ARCHITECTURE: Pure logic engine with NO Home Assistant dependencies.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from .. import const
from ..utils.dt_utils import (
    as_utc,
    dt_day_id,
    dt_previous_day_id,
    dt_start_of_next_day,
)
from .reward_engine import RewardEngine

if TYPE_CHECKING:
    from ..type_defs import (
        DailyBonusConfig,
        DailyBonusProjection,
        DailyBonusState,
        WatchAndEarnConfig,
        WatchAndEarnProjection,
        WatchAndEarnState,
    )


class EligibilityEngine:
    """Pure projections of daily bonus and watch-and-earn availability."""

    @staticmethod
    def project_daily_bonus(
        state: DailyBonusState,
        config: DailyBonusConfig,
        now: datetime,
        tz: ZoneInfo,
    ) -> DailyBonusProjection:
        """Project the daily bonus for display.

        When today's bonus is already claimed, the reward shown is the one
        earned for the current streak rather than tomorrow's.
        """
        now = as_utc(now)
        today_id = dt_day_id(now, tz)
        last_claim_date = state.get(const.DATA_DAILY_LAST_CLAIM_DATE)
        streak = RewardEngine.coerce_count(state.get(const.DATA_DAILY_STREAK))
        claimed_today = last_claim_date == today_id

        if claimed_today:
            next_streak = streak
            reward_streak = streak or 1
            next_eligible_at = dt_start_of_next_day(now, tz)
        else:
            next_streak = RewardEngine.next_streak(state, dt_previous_day_id(now, tz))
            reward_streak = next_streak
            next_eligible_at = now

        return {
            "streak": streak,
            "next_streak": next_streak,
            "available": not claimed_today,
            "reward": RewardEngine.compute_daily_bonus_reward(config, reward_streak),
            "last_claim_date": last_claim_date
            if isinstance(last_claim_date, str)
            else None,
            "next_eligible_at": next_eligible_at,
        }

    @staticmethod
    def project_watch_and_earn(
        state: WatchAndEarnState,
        config: WatchAndEarnConfig,
        now: datetime,
        tz: ZoneInfo,
    ) -> WatchAndEarnProjection:
        """Project watch-and-earn availability for display.

        next_available_at is the cooldown end when one is pending, now when a
        session could start immediately, and None when today's allowance is
        used up.
        """
        now = as_utc(now)
        today_id = dt_day_id(now, tz)
        max_views = int(config[const.CFG_MAX_VIEWS_PER_DAY])
        cooldown_minutes = config[const.CFG_COOLDOWN_MINUTES]

        watches_today = RewardEngine.watches_today(state, today_id)
        remaining_today = max(0, max_views - watches_today)
        cooldown_ends_at = RewardEngine.cooldown_ends_at(state, cooldown_minutes)
        minutes_remaining = RewardEngine.cooldown_minutes_remaining(
            state, cooldown_minutes, now
        )

        if remaining_today == 0:
            next_available_at = None
        elif cooldown_ends_at is not None and cooldown_ends_at > now:
            next_available_at = cooldown_ends_at
        else:
            next_available_at = now

        return {
            "available": remaining_today > 0 and minutes_remaining == 0,
            "remaining_today": remaining_today,
            "reward": RewardEngine.round_coins(config[const.CFG_REWARD_PER_VIEW]),
            "cooldown_minutes": cooldown_minutes,
            "max_views_per_day": max_views,
            "next_available_at": next_available_at,
            "minutes_remaining": minutes_remaining,
        }
