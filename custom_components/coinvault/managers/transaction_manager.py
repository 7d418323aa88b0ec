"""Reward Transaction Manager - Exactly-once coin awards.

Every claim runs as ONE store transaction that reads the catalog, the
user's ledger, balance mirror and engagement state, validates the request,
and stages the ledger entry, the matching balance increment and the updated
engagement counters together. A rejected claim raises before any write is
staged, so it never leaves partial state behind.

Responsibilities:
- Claim operations (fragment, daily bonus, watch-and-earn)
- Account reads and cashout quotes
- Catalog administration (upsert/remove fragment)
- Emitting instance-scoped signals after commits

NOT responsible for:
- Reward arithmetic (RewardEngine)
- Advisory availability math (EligibilityEngine; only combined here)
- Persistence mechanics and conflict retries (DocumentStore)
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.util import dt as dt_util

from .. import const
from ..catalog import CatalogValidationError, RewardCatalog, build_fragment
from ..engines.eligibility_engine import EligibilityEngine
from ..engines.reward_engine import (
    AlreadyClaimedError,
    AlreadyClaimedTodayError,
    CooldownActiveError,
    DailyLimitReachedError,
    NotFoundError,
    RewardEngine,
)
from ..utils.dt_utils import (
    as_utc,
    dt_day_id,
    dt_previous_day_id,
    dt_start_of_next_day,
    dt_to_iso,
)
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from zoneinfo import ZoneInfo

    from homeassistant.core import HomeAssistant

    from ..store import DocumentStore, Transaction
    from ..type_defs import (
        AccountSnapshot,
        CashoutQuote,
        ClaimRecord,
        DailyBonusClaimResult,
        Document,
        EngagementConfig,
        FragmentClaimResult,
        FragmentData,
        UserAccountData,
        WatchRewardClaimResult,
    )


class RewardTransactionManager(BaseManager):
    """Runs every reward claim as a single atomic store transaction.

    The store, calendar time zone and clock are injected; nothing here
    reads process-wide state.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        store: DocumentStore,
        engagement_config: EngagementConfig,
        *,
        time_zone: ZoneInfo,
        clock: Callable[[], datetime] = dt_util.utcnow,
        max_attempts: int = const.DEFAULT_TRANSACTION_MAX_ATTEMPTS,
    ) -> None:
        """Initialize the RewardTransactionManager.

        Args:
            hass: Home Assistant instance
            entry_id: Config entry id that scopes emitted signals
            store: Document store providing the transaction primitive
            engagement_config: Daily bonus and watch-and-earn parameters
            time_zone: Calendar time zone for day identifiers
            clock: Fallback source of "now" when a caller passes none
            max_attempts: Transaction attempts before a conflict is reported
        """
        super().__init__(hass, entry_id)
        self._store = store
        self._engagement_config = engagement_config
        self._time_zone = time_zone
        self._clock = clock
        self._max_attempts = max_attempts

    @property
    def store(self) -> DocumentStore:
        """The backing document store."""
        return self._store

    @property
    def engagement_config(self) -> EngagementConfig:
        """Engagement reward parameters in effect."""
        return self._engagement_config

    @property
    def time_zone(self) -> ZoneInfo:
        """Calendar time zone used for day identifiers."""
        return self._time_zone

    async def async_setup(self) -> None:
        """Audit every stored ledger and log inconsistencies."""
        user_ids = self._store.collection_ids(const.COLLECTION_COIN_CLAIMS)
        for user_id in user_ids:
            ledger = await self._store.async_get(const.COLLECTION_COIN_CLAIMS, user_id)
            audit = RewardEngine.verify_ledger(ledger or {})
            if not audit["consistent"]:
                const.LOGGER.warning(
                    "WARNING: Ledger for user %s is inconsistent: totalCoins=%s, "
                    "sum of %s entries=%s",
                    user_id,
                    audit["total_coins"],
                    audit["entry_count"],
                    audit["entries_sum"],
                )
        const.LOGGER.debug(
            "DEBUG: RewardTransactionManager initialized for entry %s with %s ledger(s)",
            self.entry_id,
            len(user_ids),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve_now(self, now: datetime | None) -> datetime:
        """Return now as aware UTC, falling back to the injected clock."""
        return as_utc(now if now is not None else self._clock())

    @staticmethod
    def _require_user(user_id: str) -> None:
        """Reject an empty user id before opening a transaction."""
        if not user_id:
            raise ValueError("Missing user id for reward claim")

    async def _async_read_catalog(self, transaction: Transaction) -> RewardCatalog:
        """Read config/coinRewards through the transaction."""
        return RewardCatalog.from_document(
            await transaction.async_get(
                const.COLLECTION_CONFIG, const.DOC_COIN_REWARDS
            )
        )

    @staticmethod
    async def _async_read_sub_state(
        transaction: Transaction, user_id: str, key: str
    ) -> dict[str, Any]:
        """Read one engagement sub-state, tolerating malformed documents."""
        engagement = await transaction.async_get(
            const.COLLECTION_USER_ENGAGEMENT, user_id
        )
        state = (engagement or {}).get(key)
        return state if isinstance(state, dict) else {}

    @staticmethod
    async def _async_stage_award(
        transaction: Transaction,
        user_id: str,
        ledger: Document | None,
        record: ClaimRecord,
        now: datetime,
    ) -> dict[str, Any]:
        """Read the balance mirror and stage the ledger and mirror writes.

        The caller has already verified that record's claim id is absent
        from ledger.

        Returns:
            Award summary used for the signal payload
        """
        mirror = await transaction.async_get(const.COLLECTION_USERS, user_id)
        ledger_patch, mirror_patch, next_total = RewardEngine.build_award_writes(
            ledger or {}, mirror or {}, record, now
        )
        transaction.set(const.COLLECTION_COIN_CLAIMS, user_id, ledger_patch, merge=True)
        transaction.set(const.COLLECTION_USERS, user_id, mirror_patch, merge=True)
        return {
            "user_id": user_id,
            "claim_id": record[const.DATA_CLAIM_FRAGMENT_ID],
            "delta": record[const.DATA_CLAIM_COINS],
            "total_coins": next_total,
            "balance": mirror_patch[const.DATA_USER_COINS],
            "source": record.get(const.DATA_CLAIM_TYPE),
            "created": ledger is None,
        }

    def _after_award(self, award: dict[str, Any]) -> None:
        """Log and signal a committed award."""
        created = award.pop("created")
        const.LOGGER.info(
            "INFO: Awarded %s coins to user %s for '%s' (total %s, balance %s)",
            award["delta"],
            award["user_id"],
            award["claim_id"],
            award["total_coins"],
            award["balance"],
        )
        if created:
            self.emit(const.SIGNAL_SUFFIX_ACCOUNT_CREATED, user_id=award["user_id"])
        self.emit(const.SIGNAL_SUFFIX_COINS_AWARDED, **award)

    async def _async_run(self, update_fn: Callable[..., Any]) -> Any:
        """Run update_fn in a store transaction with this manager's retry budget."""
        return await self._store.async_run_transaction(
            update_fn, max_attempts=self._max_attempts
        )

    # =========================================================================
    # Claims
    # =========================================================================

    async def async_claim_fragment(
        self,
        user_id: str,
        fragment_id: str,
        *,
        now: datetime | None = None,
    ) -> FragmentClaimResult:
        """Claim a one-time fragment.

        Raises:
            NotFoundError: The fragment is not in the catalog (anymore)
            AlreadyClaimedError: The user already owns this fragment
            TransactionConflictError: Retries exhausted
        """
        self._require_user(user_id)
        claimed_at = self._resolve_now(now)

        async def _claim(
            transaction: Transaction,
        ) -> tuple[FragmentClaimResult, dict[str, Any]]:
            catalog = await self._async_read_catalog(transaction)
            fragment = catalog.get_fragment(fragment_id)
            if fragment is None:
                raise NotFoundError(user_id, fragment_id)

            ledger = await transaction.async_get(const.COLLECTION_COIN_CLAIMS, user_id)
            if fragment_id in RewardEngine.claimed_entries(ledger or {}):
                raise AlreadyClaimedError(user_id, fragment_id)

            coins = RewardEngine.coerce_count(fragment.get(const.DATA_FRAGMENT_VALUE))
            record = RewardEngine.build_claim_record(
                fragment_id,
                coins,
                claimed_at,
                rarity=fragment.get(const.DATA_FRAGMENT_RARITY, const.RARITY_COMMON),
                title=fragment.get(const.DATA_FRAGMENT_TITLE, fragment_id),
                description=fragment.get(const.DATA_FRAGMENT_DESCRIPTION),
                claim_type=const.CLAIM_TYPE_FRAGMENT,
            )
            award = await self._async_stage_award(
                transaction, user_id, ledger, record, claimed_at
            )
            result: FragmentClaimResult = {
                "fragment": fragment,
                "coins_awarded": coins,
                "total_coins": award["total_coins"],
            }
            return result, award

        result, award = await self._async_run(_claim)
        self._after_award(award)
        return result

    async def async_claim_daily_bonus(
        self, user_id: str, now: datetime | None = None
    ) -> DailyBonusClaimResult:
        """Claim today's login bonus, continuing or restarting the streak.

        Raises:
            AlreadyClaimedTodayError: lastClaimDate is already today
            AlreadyClaimedError: The day's ledger entry exists
            TransactionConflictError: Retries exhausted
        """
        self._require_user(user_id)
        claimed_at = self._resolve_now(now)
        today_id = dt_day_id(claimed_at, self._time_zone)
        yesterday_id = dt_previous_day_id(claimed_at, self._time_zone)
        config = self._engagement_config[const.CFG_DAILY_BONUS]

        async def _claim(
            transaction: Transaction,
        ) -> tuple[DailyBonusClaimResult, dict[str, Any]]:
            state = await self._async_read_sub_state(
                transaction, user_id, const.DATA_ENGAGEMENT_DAILY_BONUS
            )
            if state.get(const.DATA_DAILY_LAST_CLAIM_DATE) == today_id:
                raise AlreadyClaimedTodayError(user_id, today_id)

            streak = RewardEngine.next_streak(state, yesterday_id)  # type: ignore[arg-type]
            reward = RewardEngine.compute_daily_bonus_reward(config, streak)
            claim_id = RewardEngine.daily_claim_id(today_id)

            ledger = await transaction.async_get(const.COLLECTION_COIN_CLAIMS, user_id)
            if claim_id in RewardEngine.claimed_entries(ledger or {}):
                raise AlreadyClaimedError(user_id, claim_id)

            record = RewardEngine.build_claim_record(
                claim_id,
                reward,
                claimed_at,
                rarity=const.DAILY_BONUS_CLAIM_RARITY,
                title=const.DAILY_BONUS_CLAIM_TITLE,
                description=const.DAILY_BONUS_CLAIM_DESCRIPTION,
                claim_type=const.CLAIM_TYPE_DAILY_BONUS,
            )
            award = await self._async_stage_award(
                transaction, user_id, ledger, record, claimed_at
            )

            now_iso = dt_to_iso(claimed_at)
            total_claims = RewardEngine.coerce_count(
                state.get(const.DATA_DAILY_TOTAL_CLAIMS)
            )
            transaction.set(
                const.COLLECTION_USER_ENGAGEMENT,
                user_id,
                {
                    const.DATA_ENGAGEMENT_DAILY_BONUS: {
                        const.DATA_DAILY_LAST_CLAIM_DATE: today_id,
                        const.DATA_DAILY_STREAK: streak,
                        const.DATA_DAILY_TOTAL_CLAIMS: total_claims + 1,
                        const.DATA_DAILY_LAST_REWARD: reward,
                        const.DATA_DAILY_LAST_CLAIMED_AT: now_iso,
                    },
                    const.DATA_UPDATED_AT: now_iso,
                },
                merge=True,
            )
            result: DailyBonusClaimResult = {
                "reward": reward,
                "streak": streak,
                "total_coins": award["total_coins"],
                "next_eligible_at": dt_start_of_next_day(claimed_at, self._time_zone),
            }
            return result, award

        result, award = await self._async_run(_claim)
        self._after_award(award)
        return result

    async def async_claim_watch_reward(
        self, user_id: str, now: datetime | None = None
    ) -> WatchRewardClaimResult:
        """Claim one watch-and-earn session.

        Raises:
            DailyLimitReachedError: Today's allowance is used up
            CooldownActiveError: The previous session was too recent
            AlreadyClaimedError: The session's ledger entry exists
            TransactionConflictError: Retries exhausted
        """
        self._require_user(user_id)
        claimed_at = self._resolve_now(now)
        today_id = dt_day_id(claimed_at, self._time_zone)
        config = self._engagement_config[const.CFG_WATCH_AND_EARN]
        max_views = int(config[const.CFG_MAX_VIEWS_PER_DAY])
        cooldown_minutes = config[const.CFG_COOLDOWN_MINUTES]

        async def _claim(
            transaction: Transaction,
        ) -> tuple[WatchRewardClaimResult, dict[str, Any]]:
            state: Any = await self._async_read_sub_state(
                transaction, user_id, const.DATA_ENGAGEMENT_WATCH_AND_EARN
            )
            watches_today = RewardEngine.watches_today(state, today_id)
            if watches_today >= max_views:
                raise DailyLimitReachedError(user_id, max_views)

            available_at = RewardEngine.cooldown_ends_at(state, cooldown_minutes)
            if available_at is not None and available_at > claimed_at:
                raise CooldownActiveError(
                    user_id,
                    RewardEngine.cooldown_minutes_remaining(
                        state, cooldown_minutes, claimed_at
                    ),
                    available_at,
                )

            reward = RewardEngine.round_coins(config[const.CFG_REWARD_PER_VIEW])
            next_count = watches_today + 1
            claim_id = RewardEngine.watch_claim_id(today_id, next_count)

            ledger = await transaction.async_get(const.COLLECTION_COIN_CLAIMS, user_id)
            if claim_id in RewardEngine.claimed_entries(ledger or {}):
                raise AlreadyClaimedError(user_id, claim_id)

            record = RewardEngine.build_claim_record(
                claim_id,
                reward,
                claimed_at,
                rarity=const.WATCH_CLAIM_RARITY,
                title=const.WATCH_CLAIM_TITLE,
                description=const.WATCH_CLAIM_DESCRIPTION,
                claim_type=const.CLAIM_TYPE_WATCH_AND_EARN,
            )
            award = await self._async_stage_award(
                transaction, user_id, ledger, record, claimed_at
            )

            now_iso = dt_to_iso(claimed_at)
            total_views = RewardEngine.coerce_count(
                state.get(const.DATA_WATCH_TOTAL_VIEWS)
            )
            transaction.set(
                const.COLLECTION_USER_ENGAGEMENT,
                user_id,
                {
                    const.DATA_ENGAGEMENT_WATCH_AND_EARN: {
                        const.DATA_WATCH_LAST_WATCH_DATE: today_id,
                        const.DATA_WATCH_WATCHES_TODAY: next_count,
                        const.DATA_WATCH_TOTAL_VIEWS: total_views + 1,
                        const.DATA_WATCH_LAST_REWARD: reward,
                        const.DATA_WATCH_LAST_WATCHED_AT: now_iso,
                    },
                    const.DATA_UPDATED_AT: now_iso,
                },
                merge=True,
            )
            result: WatchRewardClaimResult = {
                "reward": reward,
                "total_coins": award["total_coins"],
                "remaining_views": max(0, max_views - next_count),
                "next_available_at": claimed_at + timedelta(minutes=cooldown_minutes),
            }
            return result, award

        result, award = await self._async_run(_claim)
        self._after_award(award)
        return result

    # =========================================================================
    # Reads
    # =========================================================================

    def user_ids(self) -> list[str]:
        """Return every user with at least one stored document."""
        user_ids: set[str] = set()
        for collection in (
            const.COLLECTION_COIN_CLAIMS,
            const.COLLECTION_USERS,
            const.COLLECTION_USER_ENGAGEMENT,
        ):
            user_ids.update(self._store.collection_ids(collection))
        return sorted(user_ids)

    async def async_get_account(self, user_id: str) -> AccountSnapshot:
        """Return a consistent snapshot of the user's three documents.

        The reads go through a transaction so the ledger, mirror and
        engagement state belong to the same committed version.
        """
        self._require_user(user_id)

        async def _read(transaction: Transaction) -> AccountSnapshot:
            ledger = await transaction.async_get(const.COLLECTION_COIN_CLAIMS, user_id)
            mirror = await transaction.async_get(const.COLLECTION_USERS, user_id)
            engagement = await transaction.async_get(
                const.COLLECTION_USER_ENGAGEMENT, user_id
            )
            return {
                "user_id": user_id,
                "ledger": ledger or {},
                "balance": mirror or {},
                "engagement": engagement or {},
                "claims": RewardEngine.hydrate_claims(ledger or {}),
            }  # type: ignore[typeddict-item]

        return await self._async_run(_read)

    async def async_get_account_overview(
        self, user_id: str, *, now: datetime | None = None
    ) -> UserAccountData:
        """Return the account snapshot with its audit and eligibility projections."""
        account = await self.async_get_account(user_id)
        engagement = account["engagement"]
        at = self._resolve_now(now)
        daily_state = engagement.get(const.DATA_ENGAGEMENT_DAILY_BONUS)
        watch_state = engagement.get(const.DATA_ENGAGEMENT_WATCH_AND_EARN)
        return {
            "account": account,
            "audit": RewardEngine.verify_ledger(account["ledger"]),
            "daily_bonus": EligibilityEngine.project_daily_bonus(
                daily_state if isinstance(daily_state, dict) else {},  # type: ignore[arg-type]
                self._engagement_config[const.CFG_DAILY_BONUS],
                at,
                self._time_zone,
            ),
            "watch_and_earn": EligibilityEngine.project_watch_and_earn(
                watch_state if isinstance(watch_state, dict) else {},  # type: ignore[arg-type]
                self._engagement_config[const.CFG_WATCH_AND_EARN],
                at,
                self._time_zone,
            ),
        }

    async def async_quote_cashout(self, user_id: str) -> CashoutQuote:
        """Compute the payout input for the user's spendable balance."""
        self._require_user(user_id)

        async def _read(transaction: Transaction) -> CashoutQuote:
            catalog = await self._async_read_catalog(transaction)
            mirror = await transaction.async_get(const.COLLECTION_USERS, user_id)
            coins = RewardEngine.coerce_count((mirror or {}).get(const.DATA_USER_COINS))
            return RewardEngine.quote_cashout(coins, catalog.cashout)

        quote = await self._async_run(_read)
        const.LOGGER.debug(
            "DEBUG: Cashout quote for user %s: %s coins -> %s %s minor units (eligible=%s)",
            user_id,
            quote["coins"],
            quote["amount_minor"],
            quote["currency"],
            quote["eligible"],
        )
        return quote

    async def async_get_catalog(self) -> RewardCatalog:
        """Return the committed reward catalog."""
        return RewardCatalog.from_document(
            await self._store.async_get(const.COLLECTION_CONFIG, const.DOC_COIN_REWARDS)
        )

    # =========================================================================
    # Catalog administration
    # =========================================================================

    async def async_upsert_fragment(
        self, user_input: dict[str, Any], *, now: datetime | None = None
    ) -> FragmentData:
        """Create or update a catalog fragment.

        Existing ledger entries keep the values they were claimed with.

        Raises:
            CatalogValidationError: The fragment data is invalid
        """
        updated_at = dt_to_iso(self._resolve_now(now))
        fragment_id = user_input.get(const.DATA_FRAGMENT_ID)

        async def _upsert(transaction: Transaction) -> FragmentData:
            catalog = await self._async_read_catalog(transaction)
            existing = (
                catalog.get_fragment(fragment_id)
                if isinstance(fragment_id, str)
                else None
            )
            fragment = build_fragment(user_input, existing)
            document = catalog.with_fragment(fragment).as_document()
            document[const.DATA_UPDATED_AT] = updated_at
            transaction.set(const.COLLECTION_CONFIG, const.DOC_COIN_REWARDS, document)
            return fragment

        fragment = await self._async_run(_upsert)
        const.LOGGER.info(
            "INFO: Catalog fragment '%s' saved (value %s, rarity %s)",
            fragment[const.DATA_FRAGMENT_ID],
            fragment[const.DATA_FRAGMENT_VALUE],
            fragment[const.DATA_FRAGMENT_RARITY],
        )
        self.emit(
            const.SIGNAL_SUFFIX_CATALOG_UPDATED,
            fragment_id=fragment[const.DATA_FRAGMENT_ID],
        )
        return fragment

    async def async_remove_fragment(
        self, fragment_id: str, *, now: datetime | None = None
    ) -> None:
        """Remove a fragment from the catalog.

        Users who already claimed it keep their ledger entries; new claims
        fail with NotFoundError.

        Raises:
            NotFoundError: The fragment is not in the catalog
            CatalogValidationError: The fragment is the last one in the catalog
        """
        updated_at = dt_to_iso(self._resolve_now(now))

        async def _remove(transaction: Transaction) -> None:
            catalog = await self._async_read_catalog(transaction)
            if catalog.get_fragment(fragment_id) is None:
                raise NotFoundError("", fragment_id)
            if len(catalog.fragments) == 1:
                raise CatalogValidationError(
                    const.FIELD_FRAGMENT_ID,
                    const.TRANS_KEY_ERROR_LAST_FRAGMENT,
                    {"fragment_id": fragment_id},
                )
            document = catalog.without_fragment(fragment_id).as_document()
            document[const.DATA_UPDATED_AT] = updated_at
            transaction.set(const.COLLECTION_CONFIG, const.DOC_COIN_REWARDS, document)

        await self._async_run(_remove)
        const.LOGGER.info("INFO: Catalog fragment '%s' removed", fragment_id)
        self.emit(const.SIGNAL_SUFFIX_CATALOG_UPDATED, fragment_id=fragment_id)
