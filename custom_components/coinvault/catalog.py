# File: catalog.py
"""Reward catalog for the Coin Vault integration.

The catalog resolves reward selectors to claimable definitions. It is pure
data plus lookup and validation, with NO Home Assistant dependencies:

- RewardCatalog: Fragments and cashout parameters read from the
  admin-managed config/coinRewards document, falling back to defaults
- validate_fragment_data() / build_fragment(): Admin-side fragment rules
- build_engagement_config(): Daily bonus and watch-and-earn parameters
  from config entry options, defaulted key by key
"""

from __future__ import annotations

import copy
import re
from typing import TYPE_CHECKING, Any

from . import const

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .type_defs import (
        CashoutConfig,
        CoinRewardConfig,
        Document,
        EngagementConfig,
        FragmentData,
    )

# Lowercase words separated by single hyphens ("aurora-prism")
FRAGMENT_ID_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class CatalogValidationError(Exception):
    """Validation error with field-specific information.

    Attributes:
        field: The FIELD_* constant identifying the input that failed
        translation_key: The TRANS_KEY_* constant for the error message
        placeholders: Optional dict for translation string placeholders
    """

    def __init__(
        self,
        field: str,
        translation_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize CatalogValidationError."""
        self.field = field
        self.translation_key = translation_key
        self.placeholders = placeholders or {}
        super().__init__(translation_key)


# ==============================================================================
# CATALOG
# ==============================================================================


class RewardCatalog:
    """Immutable view of the reward catalog document."""

    def __init__(
        self, fragments: list[FragmentData], cashout: CashoutConfig
    ) -> None:
        """Initialize the catalog from already-normalized parts."""
        self._fragments = fragments
        self._cashout = cashout

    @classmethod
    def from_document(cls, document: Document | None) -> RewardCatalog:
        """Build the catalog from config/coinRewards.

        A missing document, or one whose fragment list is absent or empty,
        yields the default fragments. Cashout fields missing from the
        document take their default values.
        """
        defaults: CoinRewardConfig = copy.deepcopy(
            const.DEFAULT_COIN_REWARD_CONFIG  # type: ignore[arg-type]
        )
        if not isinstance(document, dict):
            return cls(
                defaults[const.DATA_CATALOG_FRAGMENTS],
                defaults[const.DATA_CATALOG_CASHOUT],
            )

        stored = document.get(const.DATA_CATALOG_FRAGMENTS)
        fragments = [
            copy.deepcopy(fragment)
            for fragment in (stored if isinstance(stored, list) else [])
            if isinstance(fragment, dict)
            and isinstance(fragment.get(const.DATA_FRAGMENT_ID), str)
        ]
        if not fragments:
            fragments = defaults[const.DATA_CATALOG_FRAGMENTS]

        cashout = defaults[const.DATA_CATALOG_CASHOUT]
        stored_cashout = document.get(const.DATA_CATALOG_CASHOUT)
        if isinstance(stored_cashout, dict):
            cashout.update(
                {key: value for key, value in stored_cashout.items() if key in cashout}
            )

        return cls(fragments, cashout)

    @property
    def fragments(self) -> list[FragmentData]:
        """All claimable fragments in display order."""
        return self._fragments

    @property
    def cashout(self) -> CashoutConfig:
        """Cashout conversion parameters."""
        return self._cashout

    def get_fragment(self, fragment_id: str) -> FragmentData | None:
        """Return the fragment with this id, or None if it is not offered."""
        for fragment in self._fragments:
            if fragment.get(const.DATA_FRAGMENT_ID) == fragment_id:
                return fragment
        return None

    def with_fragment(self, fragment: FragmentData) -> RewardCatalog:
        """Return a catalog with the fragment added, or replaced in place."""
        fragment_id = fragment[const.DATA_FRAGMENT_ID]
        fragments = [
            fragment if existing.get(const.DATA_FRAGMENT_ID) == fragment_id else existing
            for existing in self._fragments
        ]
        if self.get_fragment(fragment_id) is None:
            fragments.append(fragment)
        return RewardCatalog(fragments, self._cashout)

    def without_fragment(self, fragment_id: str) -> RewardCatalog:
        """Return a catalog with the fragment removed."""
        fragments = [
            existing
            for existing in self._fragments
            if existing.get(const.DATA_FRAGMENT_ID) != fragment_id
        ]
        return RewardCatalog(fragments, self._cashout)

    def as_document(self) -> Document:
        """Return the catalog in its stored document form."""
        return {
            const.DATA_CATALOG_FRAGMENTS: copy.deepcopy(self._fragments),
            const.DATA_CATALOG_CASHOUT: copy.deepcopy(self._cashout),
        }


# ==============================================================================
# FRAGMENTS
# ==============================================================================


def _coerce_fragment_value(value: Any) -> int | None:
    """Return value as a non-negative int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int) or value < 0:
        return None
    return value


def validate_fragment_data(
    data: dict[str, Any], *, is_update: bool = False
) -> dict[str, str]:
    """Validate fragment business rules.

    Works with DATA_FRAGMENT_* keys (canonical storage format).

    Args:
        data: Fragment data dict
        is_update: True when editing an existing fragment; only the fields
            present in data are checked

    Returns:
        Dict of errors: {field: translation_key}. Empty means valid.

    Validation Rules:
        1. id is a lowercase hyphenated slug
        2. title is not blank
        3. value is a non-negative integer
        4. rarity is one of RARITIES
    """
    errors: dict[str, str] = {}

    if not is_update or const.DATA_FRAGMENT_ID in data:
        fragment_id = data.get(const.DATA_FRAGMENT_ID)
        if not isinstance(fragment_id, str) or not FRAGMENT_ID_PATTERN.match(
            fragment_id
        ):
            errors[const.FIELD_FRAGMENT_ID] = const.TRANS_KEY_ERROR_INVALID_FRAGMENT_ID

    if not is_update or const.DATA_FRAGMENT_TITLE in data:
        title = data.get(const.DATA_FRAGMENT_TITLE)
        if not isinstance(title, str) or not title.strip():
            errors[const.FIELD_TITLE] = const.TRANS_KEY_ERROR_INVALID_FRAGMENT_TITLE

    if not is_update or const.DATA_FRAGMENT_VALUE in data:
        if _coerce_fragment_value(data.get(const.DATA_FRAGMENT_VALUE)) is None:
            errors[const.FIELD_VALUE] = const.TRANS_KEY_ERROR_INVALID_FRAGMENT_VALUE

    if const.DATA_FRAGMENT_RARITY in data:
        if data[const.DATA_FRAGMENT_RARITY] not in const.RARITIES:
            errors[const.FIELD_RARITY] = const.TRANS_KEY_ERROR_INVALID_FRAGMENT_RARITY

    return errors


def build_fragment(
    user_input: dict[str, Any],
    existing: FragmentData | None = None,
) -> FragmentData:
    """Build a complete fragment for create or update.

    Field priority is user_input > existing > default. The id of an existing
    fragment never changes.

    Raises:
        CatalogValidationError: The first rule that failed.

    Example:
        build_fragment({"id": "nova-shard", "title": "Nova Shard", "value": 90})
    """
    merged: dict[str, Any] = dict(existing or {})
    merged.update(user_input)
    if existing is not None:
        merged[const.DATA_FRAGMENT_ID] = existing[const.DATA_FRAGMENT_ID]

    errors = validate_fragment_data(merged)
    if errors:
        field, translation_key = next(iter(errors.items()))
        raise CatalogValidationError(
            field=field,
            translation_key=translation_key,
            placeholders={"field": field},
        )

    fragment: FragmentData = {
        const.DATA_FRAGMENT_ID: merged[const.DATA_FRAGMENT_ID],
        const.DATA_FRAGMENT_KIND: const.REWARD_KIND_FRAGMENT,
        const.DATA_FRAGMENT_TITLE: merged[const.DATA_FRAGMENT_TITLE].strip(),
        const.DATA_FRAGMENT_DESCRIPTION: str(
            merged.get(const.DATA_FRAGMENT_DESCRIPTION) or ""
        ).strip(),
        const.DATA_FRAGMENT_VALUE: _coerce_fragment_value(
            merged[const.DATA_FRAGMENT_VALUE]
        ),
        const.DATA_FRAGMENT_RARITY: merged.get(
            const.DATA_FRAGMENT_RARITY, const.DEFAULT_FRAGMENT_RARITY
        ),
        const.DATA_FRAGMENT_ACCENT: merged.get(
            const.DATA_FRAGMENT_ACCENT, const.DEFAULT_FRAGMENT_ACCENT
        ),
        const.DATA_FRAGMENT_GLOW: merged.get(
            const.DATA_FRAGMENT_GLOW, const.DEFAULT_FRAGMENT_GLOW
        ),
    }  # type: ignore[typeddict-item]
    return fragment


# ==============================================================================
# ENGAGEMENT CONFIG
# ==============================================================================


def parse_multipliers(value: Any) -> list[float]:
    """Parse streak multipliers from a list or a comma-separated string.

    Raises:
        ValueError: An entry is not a positive number.

    Example:
        parse_multipliers("1, 1.2, 1.5") -> [1.0, 1.2, 1.5]
    """
    if isinstance(value, str):
        items: list[Any] = [part.strip() for part in value.split(",") if part.strip()]
    else:
        items = list(value)

    multipliers = []
    for item in items:
        if isinstance(item, bool):
            raise ValueError(f"Invalid multiplier: {item!r}")
        multiplier = float(item)
        if multiplier <= 0:
            raise ValueError(f"Multiplier must be positive: {item!r}")
        multipliers.append(multiplier)
    return multipliers


def multipliers_non_decreasing(multipliers: list[float]) -> bool:
    """Return True if no multiplier is lower than the one before it."""
    return all(
        earlier <= later for earlier, later in zip(multipliers, multipliers[1:])
    )


def format_multipliers(multipliers: list[float]) -> str:
    """Format multipliers for the options form ("1, 1.2, 1.5")."""
    return ", ".join(f"{multiplier:g}" for multiplier in multipliers)


def build_engagement_config(options: Mapping[str, Any]) -> EngagementConfig:
    """Build the engagement config from config entry options.

    Each key falls back to its default independently. Unparseable
    multipliers and a decreasing table fall back to the defaults.
    """
    raw_multipliers = options.get(
        const.CONF_DAILY_STREAK_MULTIPLIERS, const.DEFAULT_DAILY_STREAK_MULTIPLIERS
    )
    try:
        multipliers = parse_multipliers(raw_multipliers)
        if not multipliers_non_decreasing(multipliers):
            raise ValueError("Streak multipliers must not decrease")
    except (TypeError, ValueError):
        const.LOGGER.warning(
            "WARNING: Ignoring invalid streak multipliers %r, using defaults",
            raw_multipliers,
        )
        multipliers = [float(m) for m in const.DEFAULT_DAILY_STREAK_MULTIPLIERS]

    return {
        const.CFG_DAILY_BONUS: {
            const.CFG_BASE_REWARD: int(
                options.get(const.CONF_DAILY_BASE_REWARD, const.DEFAULT_DAILY_BASE_REWARD)
            ),
            const.CFG_STREAK_MULTIPLIERS: multipliers,
            const.CFG_CAP_STREAK: int(
                options.get(const.CONF_DAILY_CAP_STREAK, const.DEFAULT_DAILY_CAP_STREAK)
            ),
        },
        const.CFG_WATCH_AND_EARN: {
            const.CFG_REWARD_PER_VIEW: float(
                options.get(
                    const.CONF_WATCH_REWARD_PER_VIEW, const.DEFAULT_WATCH_REWARD_PER_VIEW
                )
            ),
            const.CFG_COOLDOWN_MINUTES: float(
                options.get(
                    const.CONF_WATCH_COOLDOWN_MINUTES,
                    const.DEFAULT_WATCH_COOLDOWN_MINUTES,
                )
            ),
            const.CFG_MAX_VIEWS_PER_DAY: int(
                options.get(
                    const.CONF_WATCH_MAX_VIEWS_PER_DAY,
                    const.DEFAULT_WATCH_MAX_VIEWS_PER_DAY,
                )
            ),
        },
    }  # type: ignore[typeddict-item]
