"""Shared test fixtures for all tests."""

from __future__ import annotations

import pytest

from ledgerstate.collaborators import StaticCollectionRegistry
from ledgerstate.config import LedgerStateSettings
from ledgerstate.core.models import CollectionConfig, CollectionState

# ============================================================================
# Test Data Constants
# ============================================================================


TEST_MINT = "TestMint1111111111111111111111111111111111"
TEST_COLLECTION_ADDRESS = "TestColl1111111111111111111111111111111111"
PRIMARY_RPC = "https://rpc.ledger.test"
FALLBACK_RPC = "https://fallback.ledger.test"


# ============================================================================
# Clock Fixtures
# ============================================================================


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at t=1000."""
    return FakeClock()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_config() -> CollectionConfig:
    """Create a collection config with a total supply of 100."""
    return CollectionConfig(
        name="Test",
        display_name="Test Collection",
        total_supply=100,
        base_price=4200.69,
        payment_token="LOS",
        is_active=True,
        minting_enabled=True,
        mint_address=TEST_MINT,
        collection_address=TEST_COLLECTION_ADDRESS,
        creator_wallet="Creator111111111111111111111111111111111111",
    )


@pytest.fixture
def sample_config_no_mint() -> CollectionConfig:
    """Create a collection config that has no mint address yet."""
    return CollectionConfig(
        name="Unminted",
        total_supply=50,
        base_price=10.0,
        payment_token="LOS",
    )


@pytest.fixture
def registry(
    sample_config: CollectionConfig,
    sample_config_no_mint: CollectionConfig,
) -> StaticCollectionRegistry:
    """Create a registry holding the sample collections."""
    return StaticCollectionRegistry([sample_config, sample_config_no_mint])


@pytest.fixture
def sample_state() -> CollectionState:
    """Create a consistent candidate state for the sample collection."""
    return CollectionState(
        name="Test",
        total_supply=100,
        current_supply=42,
        mint_price=4200.69,
        payment_token="LOS",
        is_active=True,
        minting_enabled=True,
        mint_address=TEST_MINT,
        holders=["WalletA", "WalletB"],
    )


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def mock_settings() -> LedgerStateSettings:
    """Create settings pointing at test endpoints."""
    return LedgerStateSettings(
        rpc_url=PRIMARY_RPC,
        fallback_rpc_urls=[FALLBACK_RPC],
        rpc_timeout=5.0,
        debug=True,
        log_level="DEBUG",
    )


@pytest.fixture
def mock_settings_minimal() -> LedgerStateSettings:
    """Create settings without fallback endpoints."""
    return LedgerStateSettings(
        rpc_url=PRIMARY_RPC,
        fallback_rpc_urls=[],
    )
