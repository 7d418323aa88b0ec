"""Tests for Coin Vault services."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from homeassistant.core import Context, HomeAssistant
from homeassistant.exceptions import (
    HomeAssistantError,
    ServiceValidationError,
    Unauthorized,
)
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.coinvault import const
from custom_components.coinvault.store import TransactionConflictError

from tests.helpers import TEST_USER_ID


async def _call(
    hass: HomeAssistant,
    service: str,
    data: dict[str, Any] | None = None,
    *,
    context: Context | None = None,
    return_response: bool = True,
) -> Any:
    """Call a Coin Vault service and return its response."""
    return await hass.services.async_call(
        const.DOMAIN,
        service,
        data or {},
        blocking=True,
        context=context,
        return_response=return_response,
    )


async def test_services_registered(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """All services are registered after setup."""
    for service in const.SERVICES:
        assert hass.services.has_service(const.DOMAIN, service)


async def test_services_removed_on_unload(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Unloading the entry removes the services."""
    assert await hass.config_entries.async_unload(init_integration.entry_id)
    await hass.async_block_till_done()
    for service in const.SERVICES:
        assert not hass.services.has_service(const.DOMAIN, service)


class TestClaimServices:
    """Test claim service responses and error mapping."""

    async def test_claim_fragment(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A first claim answers with status claimed and the new total."""
        response = await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "aurora-prism"},
        )
        assert response[const.RESPONSE_STATUS] == const.RESPONSE_STATUS_CLAIMED
        assert response["coins_awarded"] == 120
        assert response["total_coins"] == 120
        assert response["fragment"][const.DATA_FRAGMENT_ID] == "aurora-prism"

    async def test_duplicate_fragment_is_not_an_error(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A repeated claim answers already_claimed and logs at INFO."""
        data = {
            const.FIELD_USER_ID: TEST_USER_ID,
            const.FIELD_FRAGMENT_ID: "aurora-prism",
        }
        await _call(hass, const.SERVICE_CLAIM_FRAGMENT, data)
        response = await _call(hass, const.SERVICE_CLAIM_FRAGMENT, data)
        assert response == {
            const.RESPONSE_STATUS: const.RESPONSE_STATUS_ALREADY_CLAIMED,
            const.RESPONSE_CLAIM_ID: "aurora-prism",
        }
        assert "duplicate claim 'aurora-prism'" in caplog.text

    async def test_duplicate_without_response(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """Without return_response a duplicate completes silently."""
        data = {
            const.FIELD_USER_ID: TEST_USER_ID,
            const.FIELD_FRAGMENT_ID: "lunar-quartz",
        }
        await _call(hass, const.SERVICE_CLAIM_FRAGMENT, data, return_response=False)
        assert (
            await _call(
                hass, const.SERVICE_CLAIM_FRAGMENT, data, return_response=False
            )
            is None
        )

    async def test_unknown_fragment(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """An unknown fragment raises a translated validation error."""
        with pytest.raises(ServiceValidationError) as err:
            await _call(
                hass,
                const.SERVICE_CLAIM_FRAGMENT,
                {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "nope"},
            )
        assert err.value.translation_key == const.TRANS_KEY_ERROR_FRAGMENT_NOT_FOUND
        assert err.value.translation_placeholders["fragment_id"] == "nope"

    async def test_daily_bonus_twice(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """The second daily claim of the day is answered as already claimed."""
        data = {const.FIELD_USER_ID: TEST_USER_ID}
        first = await _call(hass, const.SERVICE_CLAIM_DAILY_BONUS, data)
        assert first[const.RESPONSE_STATUS] == const.RESPONSE_STATUS_CLAIMED
        assert first["reward"] == 120
        assert first["streak"] == 1

        second = await _call(hass, const.SERVICE_CLAIM_DAILY_BONUS, data)
        assert second[const.RESPONSE_STATUS] == const.RESPONSE_STATUS_ALREADY_CLAIMED

    async def test_watch_reward_cooldown(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A second session inside the cooldown is rejected."""
        data = {const.FIELD_USER_ID: TEST_USER_ID}
        first = await _call(hass, const.SERVICE_CLAIM_WATCH_REWARD, data)
        assert first["reward"] == 80

        with pytest.raises(ServiceValidationError) as err:
            await _call(hass, const.SERVICE_CLAIM_WATCH_REWARD, data)
        assert err.value.translation_key == const.TRANS_KEY_ERROR_COOLDOWN_ACTIVE

    async def test_user_from_context(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_hass_users: dict[str, Any],
    ) -> None:
        """Without user_id the calling user's account is credited."""
        player = mock_hass_users["player"]
        await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_FRAGMENT_ID: "solstice-core"},
            context=Context(user_id=player.id),
        )
        account = await _call(
            hass, const.SERVICE_GET_ACCOUNT, context=Context(user_id=player.id)
        )
        assert account["user_id"] == player.id
        assert account["audit"]["total_coins"] == 260

    async def test_missing_user(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """No user_id and no user context is rejected."""
        with pytest.raises(ServiceValidationError) as err:
            await _call(hass, const.SERVICE_CLAIM_DAILY_BONUS)
        assert err.value.translation_key == const.TRANS_KEY_ERROR_MISSING_USER


class TestReadServices:
    """Test account and cashout reads."""

    async def test_get_account_is_serializable(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """Timestamps in the account response are ISO strings."""
        await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "aurora-prism"},
        )
        account = await _call(
            hass, const.SERVICE_GET_ACCOUNT, {const.FIELD_USER_ID: TEST_USER_ID}
        )
        assert account["audit"]["consistent"] is True
        assert account["daily_bonus"]["available"] is True
        assert isinstance(account["daily_bonus"]["next_eligible_at"], str)
        assert isinstance(account["watch_and_earn"]["next_available_at"], str)

    async def test_get_account_unknown_user(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A user without claims reads as an empty account."""
        account = await _call(
            hass, const.SERVICE_GET_ACCOUNT, {const.FIELD_USER_ID: "nobody"}
        )
        assert account["audit"]["total_coins"] == 0
        assert account["audit"]["entry_count"] == 0

    async def test_quote_cashout_below_minimum(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A small balance is quoted but not eligible."""
        await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "aurora-prism"},
        )
        quote = await _call(
            hass, const.SERVICE_QUOTE_CASHOUT, {const.FIELD_USER_ID: TEST_USER_ID}
        )
        assert quote["coins"] == 120
        assert quote["eligible"] is False
        assert "below minimum" in caplog.text

    @pytest.mark.parametrize(
        ("service", "method"),
        [
            (const.SERVICE_GET_ACCOUNT, "async_get_account_overview"),
            (const.SERVICE_QUOTE_CASHOUT, "async_quote_cashout"),
        ],
    )
    async def test_read_conflict(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        service: str,
        method: str,
    ) -> None:
        """Exhausted read retries surface as a translated service error."""
        manager = hass.data[const.DOMAIN][init_integration.entry_id][
            const.TRANSACTION_MANAGER
        ]
        conflict = TransactionConflictError(5, [f"users/{TEST_USER_ID}"])
        with (
            patch.object(manager, method, AsyncMock(side_effect=conflict)),
            pytest.raises(HomeAssistantError) as err,
        ):
            await _call(hass, service, {const.FIELD_USER_ID: TEST_USER_ID})
        assert err.value.translation_key == const.TRANS_KEY_ERROR_TRANSACTION_CONFLICT
        assert err.value.translation_placeholders == {"attempts": "5"}


class TestCatalogServices:
    """Test admin catalog services."""

    async def test_upsert_then_claim(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A fragment added by an automation can be claimed."""
        fragment = await _call(
            hass,
            const.SERVICE_UPSERT_FRAGMENT,
            {
                const.FIELD_FRAGMENT_ID: "nova-shard",
                const.FIELD_TITLE: "Nova Shard",
                const.FIELD_VALUE: 90,
                const.FIELD_RARITY: const.RARITY_EPIC,
            },
        )
        assert fragment[const.DATA_FRAGMENT_VALUE] == 90

        response = await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "nova-shard"},
        )
        assert response["coins_awarded"] == 90

    async def test_upsert_invalid_title(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A new fragment without a title is rejected."""
        with pytest.raises(ServiceValidationError) as err:
            await _call(
                hass,
                const.SERVICE_UPSERT_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: "nova-shard", const.FIELD_VALUE: 5},
            )
        assert (
            err.value.translation_key == const.TRANS_KEY_ERROR_INVALID_FRAGMENT_TITLE
        )

    async def test_admin_may_upsert(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_hass_users: dict[str, Any],
    ) -> None:
        """Admins can change the catalog."""
        admin = mock_hass_users["admin"]
        fragment = await _call(
            hass,
            const.SERVICE_UPSERT_FRAGMENT,
            {const.FIELD_FRAGMENT_ID: "aurora-prism", const.FIELD_VALUE: 150},
            context=Context(user_id=admin.id),
        )
        assert fragment[const.DATA_FRAGMENT_TITLE] == "Aurora Prism"
        assert fragment[const.DATA_FRAGMENT_VALUE] == 150

    async def test_non_admin_rejected(
        self,
        hass: HomeAssistant,
        init_integration: MockConfigEntry,
        mock_hass_users: dict[str, Any],
    ) -> None:
        """Regular users cannot change the catalog."""
        player = mock_hass_users["player"]
        with pytest.raises(Unauthorized):
            await _call(
                hass,
                const.SERVICE_UPSERT_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: "aurora-prism", const.FIELD_VALUE: 1},
                context=Context(user_id=player.id),
            )
        with pytest.raises(Unauthorized):
            await _call(
                hass,
                const.SERVICE_REMOVE_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: "aurora-prism"},
                context=Context(user_id=player.id),
                return_response=False,
            )

    async def test_remove_fragment(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """A removed fragment can no longer be claimed."""
        await _call(
            hass,
            const.SERVICE_REMOVE_FRAGMENT,
            {const.FIELD_FRAGMENT_ID: "eclipse-vein"},
            return_response=False,
        )
        with pytest.raises(ServiceValidationError) as err:
            await _call(
                hass,
                const.SERVICE_CLAIM_FRAGMENT,
                {
                    const.FIELD_USER_ID: TEST_USER_ID,
                    const.FIELD_FRAGMENT_ID: "eclipse-vein",
                },
            )
        assert err.value.translation_key == const.TRANS_KEY_ERROR_FRAGMENT_NOT_FOUND

    async def test_remove_unknown_fragment(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """Removing an unknown fragment is a validation error."""
        with pytest.raises(ServiceValidationError):
            await _call(
                hass,
                const.SERVICE_REMOVE_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: "nope"},
                return_response=False,
            )

    async def test_remove_last_fragment(
        self, hass: HomeAssistant, init_integration: MockConfigEntry
    ) -> None:
        """The last fragment in the catalog stays in place."""
        for fragment_id in ("aurora-prism", "solstice-core", "lunar-quartz"):
            await _call(
                hass,
                const.SERVICE_REMOVE_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: fragment_id},
                return_response=False,
            )
        with pytest.raises(ServiceValidationError) as err:
            await _call(
                hass,
                const.SERVICE_REMOVE_FRAGMENT,
                {const.FIELD_FRAGMENT_ID: "eclipse-vein"},
                return_response=False,
            )
        assert err.value.translation_key == const.TRANS_KEY_ERROR_LAST_FRAGMENT

        result = await _call(
            hass,
            const.SERVICE_CLAIM_FRAGMENT,
            {const.FIELD_USER_ID: TEST_USER_ID, const.FIELD_FRAGMENT_ID: "eclipse-vein"},
        )
        assert result["coins_awarded"] == 400
