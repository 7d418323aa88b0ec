# File: const.py
"""Constants for the Coin Vault integration.

This file centralizes configuration keys, defaults, document field names,
service names, signal suffixes, and translation keys for consistency across
the integration.
"""

import logging

from homeassistant.const import Platform

# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
COINVAULT_TITLE = "Coin Vault"

# Integration Domain
DOMAIN = "coinvault"

# Logger
LOGGER = logging.getLogger(__package__)

# Supported Platforms
PLATFORMS = [
    Platform.SENSOR,
]

# Coordinator
COORDINATOR = "coordinator"
COORDINATOR_SUFFIX = "_coordinator"
TRANSACTION_MANAGER = "transaction_manager"
DOCUMENT_STORE = "document_store"

# Storage and Versioning
STORAGE_KEY = "coinvault_documents"
STORAGE_VERSION = 1

# Transactions
DEFAULT_TRANSACTION_MAX_ATTEMPTS = 5

# Coordinator refresh keeps cooldown countdowns and day rollovers current
DEFAULT_UPDATE_INTERVAL = 1  # minutes

# Manufacturer for device info
MANUFACTURER = "Coin Vault"

# ------------------------------------------------------------------------------------------------
# Document Collections
# ------------------------------------------------------------------------------------------------
COLLECTION_CONFIG = "config"
COLLECTION_COIN_CLAIMS = "coinClaims"
COLLECTION_USERS = "users"
COLLECTION_USER_ENGAGEMENT = "userEngagement"

# Catalog document id inside COLLECTION_CONFIG
DOC_COIN_REWARDS = "coinRewards"

# Persisted payload root
DATA_DOCUMENTS = "documents"

# ------------------------------------------------------------------------------------------------
# Document Fields
# ------------------------------------------------------------------------------------------------
DATA_UPDATED_AT = "updatedAt"

# Claim ledger (coinClaims/<user>)
DATA_LEDGER_TOTAL_COINS = "totalCoins"
DATA_LEDGER_CLAIMED = "claimed"

# Claim record
DATA_CLAIM_FRAGMENT_ID = "fragmentId"
DATA_CLAIM_COINS = "coins"
DATA_CLAIM_CLAIMED_AT = "claimedAt"
DATA_CLAIM_RARITY = "rarity"
DATA_CLAIM_TITLE = "title"
DATA_CLAIM_DESCRIPTION = "description"
DATA_CLAIM_TYPE = "type"

# Balance mirror (users/<user>)
DATA_USER_COINS = "coins"
DATA_USER_REWARD_SUMMARY = "rewardSummary"
DATA_SUMMARY_TOTAL_COINS = "totalCoins"
DATA_SUMMARY_LAST_FRAGMENT_ID = "lastFragmentId"
DATA_SUMMARY_LAST_UPDATED_AT = "lastUpdatedAt"

# Engagement state (userEngagement/<user>)
DATA_ENGAGEMENT_DAILY_BONUS = "dailyBonus"
DATA_ENGAGEMENT_WATCH_AND_EARN = "watchAndEarn"

DATA_DAILY_LAST_CLAIM_DATE = "lastClaimDate"
DATA_DAILY_STREAK = "streak"
DATA_DAILY_TOTAL_CLAIMS = "totalClaims"
DATA_DAILY_LAST_REWARD = "lastReward"
DATA_DAILY_LAST_CLAIMED_AT = "lastClaimedAt"

DATA_WATCH_LAST_WATCH_DATE = "lastWatchDate"
DATA_WATCH_WATCHES_TODAY = "watchesToday"
DATA_WATCH_TOTAL_VIEWS = "totalViews"
DATA_WATCH_LAST_REWARD = "lastReward"
DATA_WATCH_LAST_WATCHED_AT = "lastWatchedAt"

# Catalog document (config/coinRewards)
DATA_CATALOG_FRAGMENTS = "fragments"
DATA_CATALOG_CASHOUT = "cashout"

DATA_FRAGMENT_ID = "id"
DATA_FRAGMENT_KIND = "kind"
DATA_FRAGMENT_TITLE = "title"
DATA_FRAGMENT_DESCRIPTION = "description"
DATA_FRAGMENT_VALUE = "value"
DATA_FRAGMENT_RARITY = "rarity"
DATA_FRAGMENT_ACCENT = "accent"
DATA_FRAGMENT_GLOW = "glow"

DATA_CASHOUT_MIN_COINS = "minCoins"
DATA_CASHOUT_EXCHANGE_RATE = "exchangeRate"
DATA_CASHOUT_CURRENCY = "currency"

# ------------------------------------------------------------------------------------------------
# Reward Kinds / Claim Types / Rarity
# ------------------------------------------------------------------------------------------------
REWARD_KIND_FRAGMENT = "fragment"

CLAIM_TYPE_FRAGMENT = "fragment"
CLAIM_TYPE_DAILY_BONUS = "dailyBonus"
CLAIM_TYPE_WATCH_AND_EARN = "watchAndEarn"

RARITY_COMMON = "common"
RARITY_RARE = "rare"
RARITY_EPIC = "epic"
RARITY_LEGENDARY = "legendary"
RARITIES = [RARITY_COMMON, RARITY_RARE, RARITY_EPIC, RARITY_LEGENDARY]

# Claim id prefixes
CLAIM_ID_PREFIX_DAILY = "daily-"
CLAIM_ID_PREFIX_WATCH = "watch-"

# Ledger record display values
DAILY_BONUS_CLAIM_TITLE = "Daily login bonus"
DAILY_BONUS_CLAIM_DESCRIPTION = "Daily reward for keeping your streak alive."
DAILY_BONUS_CLAIM_RARITY = RARITY_RARE
WATCH_CLAIM_TITLE = "Watch & earn"
WATCH_CLAIM_DESCRIPTION = "Coins earned by completing a rewarded session."
WATCH_CLAIM_RARITY = RARITY_COMMON

# ------------------------------------------------------------------------------------------------
# Configuration Keys (config entry data / options)
# ------------------------------------------------------------------------------------------------
CONF_CALENDAR_TIME_ZONE = "calendar_time_zone"
CONF_DAILY_BASE_REWARD = "daily_base_reward"
CONF_DAILY_STREAK_MULTIPLIERS = "daily_streak_multipliers"
CONF_DAILY_CAP_STREAK = "daily_cap_streak"
CONF_WATCH_REWARD_PER_VIEW = "watch_reward_per_view"
CONF_WATCH_COOLDOWN_MINUTES = "watch_cooldown_minutes"
CONF_WATCH_MAX_VIEWS_PER_DAY = "watch_max_views_per_day"

# Engagement config dict keys (mirror the stored engagement schema)
CFG_DAILY_BONUS = "dailyBonus"
CFG_WATCH_AND_EARN = "watchAndEarn"
CFG_BASE_REWARD = "baseReward"
CFG_STREAK_MULTIPLIERS = "streakMultipliers"
CFG_CAP_STREAK = "capStreak"
CFG_REWARD_PER_VIEW = "rewardPerView"
CFG_COOLDOWN_MINUTES = "cooldownMinutes"
CFG_MAX_VIEWS_PER_DAY = "maxViewsPerDay"

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_CALENDAR_TIME_ZONE = "UTC"

DEFAULT_DAILY_BASE_REWARD = 120
DEFAULT_DAILY_STREAK_MULTIPLIERS = [1, 1.2, 1.5, 1.8, 2, 2.25, 2.5]
DEFAULT_DAILY_CAP_STREAK = 14
DEFAULT_WATCH_REWARD_PER_VIEW = 80
DEFAULT_WATCH_COOLDOWN_MINUTES = 30
DEFAULT_WATCH_MAX_VIEWS_PER_DAY = 5

DEFAULT_CASHOUT_MIN_COINS = 1000
DEFAULT_CASHOUT_EXCHANGE_RATE = 0.5
DEFAULT_CASHOUT_CURRENCY = "INR"

DEFAULT_FRAGMENT_RARITY = RARITY_COMMON
DEFAULT_FRAGMENT_ACCENT = "from-slate-200 via-indigo-300 to-sky-400"
DEFAULT_FRAGMENT_GLOW = "shadow-[0_0_45px_rgba(129,140,248,0.35)]"

DEFAULT_COIN_REWARD_CONFIG = {
    DATA_CATALOG_FRAGMENTS: [
        {
            DATA_FRAGMENT_ID: "aurora-prism",
            DATA_FRAGMENT_KIND: REWARD_KIND_FRAGMENT,
            DATA_FRAGMENT_TITLE: "Aurora Prism",
            DATA_FRAGMENT_DESCRIPTION: "Shimmers with polar light and unlocks a burst of squad energy.",
            DATA_FRAGMENT_VALUE: 120,
            DATA_FRAGMENT_RARITY: RARITY_RARE,
            DATA_FRAGMENT_ACCENT: "from-cyan-400 via-sky-500 to-blue-600",
            DATA_FRAGMENT_GLOW: "shadow-[0_0_60px_rgba(56,189,248,0.45)]",
        },
        {
            DATA_FRAGMENT_ID: "solstice-core",
            DATA_FRAGMENT_KIND: REWARD_KIND_FRAGMENT,
            DATA_FRAGMENT_TITLE: "Solstice Core",
            DATA_FRAGMENT_DESCRIPTION: "A molten fragment forged at the height of a solar flare.",
            DATA_FRAGMENT_VALUE: 260,
            DATA_FRAGMENT_RARITY: RARITY_EPIC,
            DATA_FRAGMENT_ACCENT: "from-amber-400 via-orange-500 to-rose-500",
            DATA_FRAGMENT_GLOW: "shadow-[0_0_70px_rgba(251,191,36,0.4)]",
        },
        {
            DATA_FRAGMENT_ID: "lunar-quartz",
            DATA_FRAGMENT_KIND: REWARD_KIND_FRAGMENT,
            DATA_FRAGMENT_TITLE: "Lunar Quartz",
            DATA_FRAGMENT_DESCRIPTION: "Captured moonlight that amplifies your co-op resonance.",
            DATA_FRAGMENT_VALUE: 80,
            DATA_FRAGMENT_RARITY: RARITY_COMMON,
            DATA_FRAGMENT_ACCENT: "from-slate-200 via-indigo-300 to-sky-400",
            DATA_FRAGMENT_GLOW: "shadow-[0_0_45px_rgba(129,140,248,0.35)]",
        },
        {
            DATA_FRAGMENT_ID: "eclipse-vein",
            DATA_FRAGMENT_KIND: REWARD_KIND_FRAGMENT,
            DATA_FRAGMENT_TITLE: "Eclipse Vein",
            DATA_FRAGMENT_DESCRIPTION: "Rare alloy balanced between dark and radiant energy.",
            DATA_FRAGMENT_VALUE: 400,
            DATA_FRAGMENT_RARITY: RARITY_LEGENDARY,
            DATA_FRAGMENT_ACCENT: "from-purple-500 via-fuchsia-500 to-violet-600",
            DATA_FRAGMENT_GLOW: "shadow-[0_0_80px_rgba(168,85,247,0.45)]",
        },
    ],
    DATA_CATALOG_CASHOUT: {
        DATA_CASHOUT_MIN_COINS: DEFAULT_CASHOUT_MIN_COINS,
        DATA_CASHOUT_EXCHANGE_RATE: DEFAULT_CASHOUT_EXCHANGE_RATE,
        DATA_CASHOUT_CURRENCY: DEFAULT_CASHOUT_CURRENCY,
    },
}

# Gateway amounts are expressed in the currency's minor unit (paise, cents)
CASHOUT_MINOR_UNIT_FACTOR = 100

# ------------------------------------------------------------------------------------------------
# Dispatcher Signals (instance scoped via helpers.entity_helpers.get_event_signal)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_COINS_AWARDED = "coins_awarded"
SIGNAL_SUFFIX_ACCOUNT_CREATED = "account_created"
SIGNAL_SUFFIX_CATALOG_UPDATED = "catalog_updated"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_CLAIM_FRAGMENT = "claim_fragment"
SERVICE_CLAIM_DAILY_BONUS = "claim_daily_bonus"
SERVICE_CLAIM_WATCH_REWARD = "claim_watch_reward"
SERVICE_GET_ACCOUNT = "get_account"
SERVICE_QUOTE_CASHOUT = "quote_cashout"
SERVICE_UPSERT_FRAGMENT = "upsert_fragment"
SERVICE_REMOVE_FRAGMENT = "remove_fragment"

SERVICES = [
    SERVICE_CLAIM_FRAGMENT,
    SERVICE_CLAIM_DAILY_BONUS,
    SERVICE_CLAIM_WATCH_REWARD,
    SERVICE_GET_ACCOUNT,
    SERVICE_QUOTE_CASHOUT,
    SERVICE_UPSERT_FRAGMENT,
    SERVICE_REMOVE_FRAGMENT,
]

# Service fields
FIELD_USER_ID = "user_id"
FIELD_FRAGMENT_ID = "fragment_id"
FIELD_TITLE = "title"
FIELD_VALUE = "value"
FIELD_RARITY = "rarity"
FIELD_DESCRIPTION = "description"

# Service response keys
RESPONSE_STATUS = "status"
RESPONSE_STATUS_CLAIMED = "claimed"
RESPONSE_STATUS_ALREADY_CLAIMED = "already_claimed"
RESPONSE_CLAIM_ID = "claim_id"

# ------------------------------------------------------------------------------------------------
# Sensors
# ------------------------------------------------------------------------------------------------
SENSOR_KEY_COIN_BALANCE = "coin_balance"
SENSOR_KEY_DAILY_STREAK = "daily_streak"
SENSOR_KEY_WATCH_VIEWS_REMAINING = "watch_views_remaining"

DEFAULT_COINS_ICON = "mdi:hand-coin-outline"
DEFAULT_STREAK_ICON = "mdi:fire"
DEFAULT_WATCH_ICON = "mdi:play-circle-outline"
UNIT_COINS = "coins"
UNIT_VIEWS = "views"

ATTR_USER_ID = "user_id"
ATTR_TOTAL_COINS = "total_coins"
ATTR_CLAIM_COUNT = "claim_count"
ATTR_LAST_FRAGMENT_ID = "last_fragment_id"
ATTR_LEDGER_CONSISTENT = "ledger_consistent"
ATTR_AVAILABLE = "available"
ATTR_NEXT_STREAK = "next_streak"
ATTR_PROJECTED_REWARD = "projected_reward"
ATTR_LAST_CLAIM_DATE = "last_claim_date"
ATTR_NEXT_ELIGIBLE_AT = "next_eligible_at"
ATTR_NEXT_AVAILABLE_AT = "next_available_at"
ATTR_MINUTES_REMAINING = "minutes_remaining"
ATTR_COOLDOWN_MINUTES = "cooldown_minutes"
ATTR_MAX_VIEWS_PER_DAY = "max_views_per_day"

# ------------------------------------------------------------------------------------------------
# Config Flow
# ------------------------------------------------------------------------------------------------
CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

CFOF_TITLE = "title"

# ------------------------------------------------------------------------------------------------
# Translation Keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_ERROR_INVALID_TIME_ZONE = "invalid_time_zone"
TRANS_KEY_ERROR_INVALID_MULTIPLIERS = "invalid_multipliers"
TRANS_KEY_ERROR_DECREASING_MULTIPLIERS = "decreasing_multipliers"

TRANS_KEY_ERROR_FRAGMENT_NOT_FOUND = "fragment_not_found"
TRANS_KEY_ERROR_ALREADY_CLAIMED = "already_claimed"
TRANS_KEY_ERROR_ALREADY_CLAIMED_TODAY = "already_claimed_today"
TRANS_KEY_ERROR_DAILY_LIMIT_REACHED = "daily_limit_reached"
TRANS_KEY_ERROR_COOLDOWN_ACTIVE = "cooldown_active"
TRANS_KEY_ERROR_TRANSACTION_CONFLICT = "transaction_conflict"
TRANS_KEY_ERROR_MISSING_USER = "missing_user"
TRANS_KEY_ERROR_INVALID_FRAGMENT_ID = "invalid_fragment_id"
TRANS_KEY_ERROR_INVALID_FRAGMENT_TITLE = "invalid_fragment_title"
TRANS_KEY_ERROR_INVALID_FRAGMENT_VALUE = "invalid_fragment_value"
TRANS_KEY_ERROR_INVALID_FRAGMENT_RARITY = "invalid_fragment_rarity"
TRANS_KEY_ERROR_LAST_FRAGMENT = "last_fragment"
TRANS_KEY_ERROR_NO_ENTRY = "no_entry_found"
