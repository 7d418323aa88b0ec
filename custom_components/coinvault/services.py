# File: services.py
"""Defines custom services for the Coin Vault integration.

Claim services are the entry points for rewarded actions. Every service
returns a JSON-serializable response when the caller asks for one.

Failure mapping:
- Duplicate claims (AlreadyClaimed*) are a normal outcome: logged at INFO
  and answered with {"status": "already_claimed"} instead of an error.
- Eligibility failures raise ServiceValidationError with a translation key.
- Exhausted transaction retries raise HomeAssistantError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall, SupportsResponse
from homeassistant.exceptions import (
    HomeAssistantError,
    ServiceValidationError,
    Unauthorized,
)
from homeassistant.helpers import config_validation as cv

from . import const
from .catalog import CatalogValidationError
from .engines.reward_engine import RewardClaimError
from .store import TransactionConflictError
from .utils.dt_utils import dt_serialize

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from homeassistant.core import ServiceResponse

    from .managers.transaction_manager import RewardTransactionManager

# --- Service Schemas ---
USER_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_USER_ID): cv.string,
    }
)

CLAIM_FRAGMENT_SCHEMA = USER_SCHEMA.extend(
    {
        vol.Required(const.FIELD_FRAGMENT_ID): cv.string,
    }
)

UPSERT_FRAGMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_FRAGMENT_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_VALUE): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional(const.FIELD_RARITY): vol.In(const.RARITIES),
        vol.Optional(const.FIELD_DESCRIPTION): cv.string,
    }
)

REMOVE_FRAGMENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_FRAGMENT_ID): cv.string,
    }
)

# Service field -> catalog document field
_FRAGMENT_FIELD_MAP = {
    const.FIELD_FRAGMENT_ID: const.DATA_FRAGMENT_ID,
    const.FIELD_TITLE: const.DATA_FRAGMENT_TITLE,
    const.FIELD_VALUE: const.DATA_FRAGMENT_VALUE,
    const.FIELD_RARITY: const.DATA_FRAGMENT_RARITY,
    const.FIELD_DESCRIPTION: const.DATA_FRAGMENT_DESCRIPTION,
}


# ==============================================================================
# Helpers
# ==============================================================================


def _get_transaction_manager(hass: HomeAssistant) -> RewardTransactionManager:
    """Return the transaction manager of the loaded entry."""
    for entry_data in hass.data.get(const.DOMAIN, {}).values():
        return entry_data[const.TRANSACTION_MANAGER]
    raise ServiceValidationError(
        translation_domain=const.DOMAIN,
        translation_key=const.TRANS_KEY_ERROR_NO_ENTRY,
    )


def _resolve_user_id(call: ServiceCall) -> str:
    """Return the explicit user_id field, else the calling user."""
    user_id = call.data.get(const.FIELD_USER_ID) or call.context.user_id
    if not user_id:
        raise ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_MISSING_USER,
        )
    return user_id


async def _async_require_admin(hass: HomeAssistant, call: ServiceCall) -> None:
    """Reject catalog changes from non-admin users.

    Calls without a user context (automations, scripts) are allowed.
    """
    if not call.context.user_id:
        return
    user = await hass.auth.async_get_user(call.context.user_id)
    if user is None or not user.is_admin:
        raise Unauthorized(context=call.context)


def _conflict_error(action: str, err: TransactionConflictError) -> HomeAssistantError:
    """Translate exhausted transaction retries into a service error."""
    const.LOGGER.warning("WARNING: %s: %s", action, err)
    return HomeAssistantError(
        translation_domain=const.DOMAIN,
        translation_key=const.TRANS_KEY_ERROR_TRANSACTION_CONFLICT,
        translation_placeholders={"attempts": str(err.attempts)},
    )


async def _async_claim(
    call: ServiceCall,
    action: str,
    claim: Callable[[], Awaitable[Mapping[str, Any]]],
) -> ServiceResponse:
    """Run a claim and translate its outcome into a service response."""
    try:
        result = await claim()
    except RewardClaimError as err:
        if err.is_duplicate:
            const.LOGGER.info(
                "INFO: %s: duplicate claim '%s' for user %s ignored",
                action,
                err.claim_id,
                err.user_id,
            )
            if not call.return_response:
                return None
            return {
                const.RESPONSE_STATUS: const.RESPONSE_STATUS_ALREADY_CLAIMED,
                const.RESPONSE_CLAIM_ID: err.claim_id,
            }
        const.LOGGER.warning("WARNING: %s: rejected: %s", action, err)
        raise ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=err.translation_key,
            translation_placeholders=err.placeholders,
        ) from err
    except TransactionConflictError as err:
        raise _conflict_error(action, err) from err

    if not call.return_response:
        return None
    return {
        const.RESPONSE_STATUS: const.RESPONSE_STATUS_CLAIMED,
        **dt_serialize(result),
    }


# ==============================================================================
# Setup
# ==============================================================================


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Coin Vault services."""

    async def handle_claim_fragment(call: ServiceCall) -> ServiceResponse:
        """Handle claiming a one-time fragment."""
        manager = _get_transaction_manager(hass)
        user_id = _resolve_user_id(call)
        fragment_id = call.data[const.FIELD_FRAGMENT_ID]
        return await _async_claim(
            call,
            "Claim Fragment",
            lambda: manager.async_claim_fragment(user_id, fragment_id),
        )

    async def handle_claim_daily_bonus(call: ServiceCall) -> ServiceResponse:
        """Handle claiming the daily login bonus."""
        manager = _get_transaction_manager(hass)
        user_id = _resolve_user_id(call)
        return await _async_claim(
            call,
            "Claim Daily Bonus",
            lambda: manager.async_claim_daily_bonus(user_id),
        )

    async def handle_claim_watch_reward(call: ServiceCall) -> ServiceResponse:
        """Handle claiming a watch-and-earn session."""
        manager = _get_transaction_manager(hass)
        user_id = _resolve_user_id(call)
        return await _async_claim(
            call,
            "Claim Watch Reward",
            lambda: manager.async_claim_watch_reward(user_id),
        )

    async def handle_get_account(call: ServiceCall) -> ServiceResponse:
        """Return the user's ledger, balance, claims and eligibility."""
        manager = _get_transaction_manager(hass)
        user_id = _resolve_user_id(call)
        try:
            overview = await manager.async_get_account_overview(user_id)
        except TransactionConflictError as err:
            raise _conflict_error("Get Account", err) from err
        return dt_serialize(
            {
                **overview["account"],
                "audit": overview["audit"],
                "daily_bonus": overview["daily_bonus"],
                "watch_and_earn": overview["watch_and_earn"],
            }
        )

    async def handle_quote_cashout(call: ServiceCall) -> ServiceResponse:
        """Return the payout amount for the user's balance."""
        manager = _get_transaction_manager(hass)
        user_id = _resolve_user_id(call)
        try:
            quote = await manager.async_quote_cashout(user_id)
        except TransactionConflictError as err:
            raise _conflict_error("Quote Cashout", err) from err
        if not quote["eligible"]:
            const.LOGGER.info(
                "INFO: Quote Cashout: user %s below minimum (%s < %s)",
                user_id,
                quote["coins"],
                quote["min_coins"],
            )
        return dt_serialize(quote)

    async def handle_upsert_fragment(call: ServiceCall) -> ServiceResponse:
        """Create or update a catalog fragment."""
        await _async_require_admin(hass, call)
        manager = _get_transaction_manager(hass)
        user_input = {
            data_key: call.data[field]
            for field, data_key in _FRAGMENT_FIELD_MAP.items()
            if field in call.data
        }
        try:
            fragment = await manager.async_upsert_fragment(user_input)
        except CatalogValidationError as err:
            const.LOGGER.warning(
                "WARNING: Upsert Fragment: invalid field '%s' (%s)",
                err.field,
                err.translation_key,
            )
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=err.translation_key,
                translation_placeholders=err.placeholders,
            ) from err
        except TransactionConflictError as err:
            raise _conflict_error("Upsert Fragment", err) from err
        if not call.return_response:
            return None
        return dt_serialize(fragment)

    async def handle_remove_fragment(call: ServiceCall) -> None:
        """Remove a fragment from the catalog."""
        await _async_require_admin(hass, call)
        manager = _get_transaction_manager(hass)
        fragment_id = call.data[const.FIELD_FRAGMENT_ID]
        try:
            await manager.async_remove_fragment(fragment_id)
        except (RewardClaimError, CatalogValidationError) as err:
            raise ServiceValidationError(
                translation_domain=const.DOMAIN,
                translation_key=err.translation_key,
                translation_placeholders=err.placeholders,
            ) from err
        except TransactionConflictError as err:
            raise _conflict_error("Remove Fragment", err) from err

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLAIM_FRAGMENT,
        handle_claim_fragment,
        schema=CLAIM_FRAGMENT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLAIM_DAILY_BONUS,
        handle_claim_daily_bonus,
        schema=USER_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLAIM_WATCH_REWARD,
        handle_claim_watch_reward,
        schema=USER_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_GET_ACCOUNT,
        handle_get_account,
        schema=USER_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_QUOTE_CASHOUT,
        handle_quote_cashout,
        schema=USER_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_UPSERT_FRAGMENT,
        handle_upsert_fragment,
        schema=UPSERT_FRAGMENT_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_REMOVE_FRAGMENT,
        handle_remove_fragment,
        schema=REMOVE_FRAGMENT_SCHEMA,
    )

    const.LOGGER.info("INFO: Coin Vault services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Coin Vault services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: Coin Vault services have been unregistered")
