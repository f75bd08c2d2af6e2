"""Tests for the ledger scanner."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ledgerstate.core.exceptions import LedgerUnavailableError
from ledgerstate.core.models import LedgerAccount
from ledgerstate.ledger.scanner import (
    MINT_OFFSET,
    TOKEN_ACCOUNT_SIZE,
    TOKEN_PROGRAM_ID,
    LedgerScanner,
)

MINT = "Mint111"


def parsed(address: str, owner: str | None) -> LedgerAccount:
    data = {"parsed": {"info": {"owner": owner}}} if owner else ["", "base64"]
    return LedgerAccount(address=address, data=data)


@pytest.fixture
def client() -> AsyncMock:
    """Create a ledger client returning three token accounts."""
    mock = AsyncMock()
    mock.name = "primary"
    mock.query_accounts_by_filter.return_value = [
        parsed("Acc1", "WalletA"),
        parsed("Acc2", "WalletB"),
        parsed("Acc3", "WalletA"),
    ]
    return mock


class TestLedgerScanner:
    """Tests for LedgerScanner."""

    async def test_scan_supply_filters(self, client):
        scanner = LedgerScanner(client)
        assert await scanner.scan_supply(MINT) == 3

        client.query_accounts_by_filter.assert_awaited_once_with(
            TOKEN_PROGRAM_ID,
            [
                {"dataSize": TOKEN_ACCOUNT_SIZE},
                {"memcmp": {"offset": MINT_OFFSET, "bytes": MINT}},
            ],
        )

    async def test_custom_program(self, client):
        scanner = LedgerScanner(client, program_id="OtherProgram", account_size=82)
        await scanner.scan_supply(MINT)
        program_id, filters = client.query_accounts_by_filter.await_args.args
        assert program_id == "OtherProgram"
        assert filters[0] == {"dataSize": 82}

    async def test_scan_unique_holders_in_order(self, client):
        result = await LedgerScanner(client).scan(MINT)
        assert result.supply == 3
        assert result.holders == ["WalletA", "WalletB"]

    async def test_holder_lookup_for_raw_accounts(self, client):
        client.query_accounts_by_filter.return_value = [parsed("Acc1", None)]
        client.query_account_info.return_value = parsed("Acc1", "WalletC")

        result = await LedgerScanner(client).scan(MINT)

        assert result.holders == ["WalletC"]
        client.query_account_info.assert_awaited_once_with("Acc1")

    async def test_failed_holder_lookup_skipped(self, client):
        client.query_accounts_by_filter.return_value = [
            parsed("Acc1", None),
            parsed("Acc2", "WalletB"),
        ]
        client.query_account_info.side_effect = LedgerUnavailableError("down", source="primary")

        result = await LedgerScanner(client).scan(MINT)

        assert result.supply == 2
        assert result.holders == ["WalletB"]

    async def test_scan_error_propagates(self, client):
        client.query_accounts_by_filter.side_effect = LedgerUnavailableError("down", source="primary")
        with pytest.raises(LedgerUnavailableError):
            await LedgerScanner(client).scan_supply(MINT)

    def test_name_from_client(self, client):
        assert LedgerScanner(client).name == "primary"
