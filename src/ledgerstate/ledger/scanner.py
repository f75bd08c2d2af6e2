"""Derives collection facts from raw ledger accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ledgerstate.core.exceptions import LedgerUnavailableError
from ledgerstate.core.models import LedgerAccount
from ledgerstate.ledger.client import LedgerClient, data_size_filter, memcmp_filter

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_ACCOUNT_SIZE = 165
MINT_OFFSET = 0


@dataclass
class ScanResult:
    """Supply and holders found by one account scan."""

    supply: int
    holders: list[str] = field(default_factory=list)


class LedgerScanner:
    """Counts minted items and holders of a collection by scanning token accounts."""

    def __init__(
        self,
        client: LedgerClient,
        *,
        program_id: str = TOKEN_PROGRAM_ID,
        account_size: int = TOKEN_ACCOUNT_SIZE,
    ) -> None:
        self.client = client
        self.program_id = program_id
        self.account_size = account_size

    @property
    def name(self) -> str:
        return self.client.name

    async def _token_accounts(self, mint_address: str) -> list[LedgerAccount]:
        return await self.client.query_accounts_by_filter(
            self.program_id,
            [
                data_size_filter(self.account_size),
                memcmp_filter(MINT_OFFSET, mint_address),
            ],
        )

    async def scan_supply(self, mint_address: str) -> int:
        """Number of token accounts minted for ``mint_address``."""
        accounts = await self._token_accounts(mint_address)
        logger.debug(f"Supply scan via {self.name}: {len(accounts)} accounts for {mint_address}")
        return len(accounts)

    async def scan(self, mint_address: str) -> ScanResult:
        """Supply and unique holders from a single account query."""
        accounts = await self._token_accounts(mint_address)
        holders = await self._holders(accounts)
        logger.debug(
            f"Collection scan via {self.name}: {len(accounts)} accounts, "
            f"{len(holders)} holders for {mint_address}"
        )
        return ScanResult(supply=len(accounts), holders=holders)

    async def _holders(self, accounts: list[LedgerAccount]) -> list[str]:
        holders: dict[str, None] = {}
        for account in accounts:
            owner = account.token_owner
            if owner is None:
                try:
                    info = await self.client.query_account_info(account.address)
                except LedgerUnavailableError as e:
                    logger.warning(f"Failed to read holder account {account.address}: {e}")
                    continue
                owner = info.token_owner if info else None
            if owner:
                holders[owner] = None
        return list(holders)
