"""Shared fixtures for Coin Vault tests."""

from typing import Any
from zoneinfo import ZoneInfo

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.coinvault import const
from custom_components.coinvault.catalog import build_engagement_config
from custom_components.coinvault.managers import RewardTransactionManager
from custom_components.coinvault.store import InMemoryDocumentStore

from tests.helpers import T0, TEST_ENTRY_ID

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Return an empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def engagement_options() -> dict[str, Any]:
    """Config entry options used to build the engagement config."""
    return {}


@pytest.fixture
def manager(
    hass: HomeAssistant,
    store: InMemoryDocumentStore,
    engagement_options: dict[str, Any],
) -> RewardTransactionManager:
    """Return a transaction manager on the in-memory store, calendar in UTC."""
    return RewardTransactionManager(
        hass,
        TEST_ENTRY_ID,
        store,
        build_engagement_config(engagement_options),
        time_zone=ZoneInfo("UTC"),
        clock=lambda: T0,
    )


@pytest.fixture
async def mock_hass_users(hass: HomeAssistant) -> dict[str, Any]:
    """Create an admin and a regular Home Assistant user."""
    admin_user = await hass.auth.async_create_user(
        "Admin User",
        group_ids=["system-admin"],
    )
    player_user = await hass.auth.async_create_user(
        "Player One",
        group_ids=["system-users"],
    )
    return {"admin": admin_user, "player": player_user}


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a Coin Vault config entry with default options."""
    return MockConfigEntry(
        domain=const.DOMAIN,
        title=const.COINVAULT_TITLE,
        data={const.CONF_CALENDAR_TIME_ZONE: "UTC"},
        options={},
        entry_id=TEST_ENTRY_ID,
    )


@pytest.fixture
async def init_integration(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry
) -> MockConfigEntry:
    """Set up the integration and return its config entry."""
    mock_config_entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(mock_config_entry.entry_id)
    await hass.async_block_till_done()
    return mock_config_entry
