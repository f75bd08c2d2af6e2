"""Ledger query API and its JSON-RPC implementation."""

from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from ledgerstate.core.exceptions import LedgerUnavailableError
from ledgerstate.core.models import LedgerAccount

logger = logging.getLogger(__name__)


def data_size_filter(size: int) -> dict[str, Any]:
    """Match accounts whose data is exactly ``size`` bytes."""
    return {"dataSize": size}


def memcmp_filter(offset: int, value: str) -> dict[str, Any]:
    """Match accounts whose data contains ``value`` (base58) at ``offset``."""
    return {"memcmp": {"offset": offset, "bytes": value}}


@runtime_checkable
class LedgerClient(Protocol):
    """Read-only view of the remote ledger."""

    name: str

    async def query_accounts_by_filter(
        self,
        program_id: str,
        filters: list[dict[str, Any]],
    ) -> list[LedgerAccount]:
        """Accounts owned by ``program_id`` matching every filter."""
        ...

    async def query_account_info(self, address: str) -> LedgerAccount | None:
        """A single account, or None if it does not exist."""
        ...

    async def query_latest_checkpoint(self) -> str:
        """Handle of the most recent ledger checkpoint."""
        ...


class LedgerClientConfig(BaseModel):
    """Configuration for a JSON-RPC ledger client."""

    url: str
    name: str | None = None
    timeout: float = 15.0
    commitment: str = "confirmed"
    retry_on_429: bool = True
    max_429_retries: int = 2
    backoff_factor: float = 2.0
    base_backoff: float = 1.0
    max_backoff: float = 30.0


class RpcLedgerClient:
    """
    JSON-RPC ledger client over httpx.

    Provides:
    - HTTP client management with connection pooling
    - 429 handling with Retry-After or exponential backoff
    - Mapping of transport and RPC errors to LedgerUnavailableError
    """

    def __init__(self, config: LedgerClientConfig) -> None:
        self.config = config
        self.name = config.name or config.url
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    @asynccontextmanager
    async def _get_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Get or create HTTP client with proper lifecycle."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout),
                headers=self._get_default_headers(),
                follow_redirects=True,
            )

        try:
            yield self._client
        except httpx.HTTPError as e:
            raise LedgerUnavailableError(
                message=f"HTTP error: {e}",
                source=self.name,
            ) from e

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": "ledgerstate/0.1",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _backoff(self, attempt: int, retry_after: str | None) -> float:
        if retry_after:
            try:
                return min(float(retry_after), self.config.max_backoff)
            except ValueError:
                pass
        return min(
            self.config.base_backoff * self.config.backoff_factor ** (attempt - 1),
            self.config.max_backoff,
        )

    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        async with self._get_client() as client:
            attempt = 0
            while True:
                response = await client.post(self.config.url, json=payload)

                if response.status_code != 429:
                    break

                attempt += 1
                if not self.config.retry_on_429 or attempt > self.config.max_429_retries:
                    raise LedgerUnavailableError(
                        message="Rate limit exceeded",
                        source=self.name,
                        status_code=429,
                    )
                wait_time = self._backoff(attempt, response.headers.get("Retry-After"))
                logger.warning(f"{self.name} returned 429 for {method}, retrying in {wait_time:.1f}s")
                await asyncio.sleep(wait_time)

            if not response.is_success:
                raise LedgerUnavailableError(
                    message=f"HTTP {response.status_code} from {method}",
                    source=self.name,
                    status_code=response.status_code,
                )

            try:
                body = response.json()
            except ValueError as e:
                raise LedgerUnavailableError(
                    message=f"Invalid JSON from {method}",
                    source=self.name,
                    status_code=response.status_code,
                ) from e

        if not isinstance(body, dict):
            raise LedgerUnavailableError(
                message=f"Malformed response from {method}: expected an object",
                source=self.name,
                status_code=response.status_code,
            )

        if error := body.get("error"):
            if not isinstance(error, dict):
                error = {"message": str(error)}
            raise LedgerUnavailableError(
                message=f"RPC error from {method}: {error.get('message', error)}",
                source=self.name,
                rpc_code=error.get("code"),
                details={"error": error},
            )

        return body.get("result")

    async def query_accounts_by_filter(
        self,
        program_id: str,
        filters: list[dict[str, Any]],
    ) -> list[LedgerAccount]:
        result = await self._call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "commitment": self.config.commitment,
                    "encoding": "jsonParsed",
                    "filters": filters,
                },
            ],
        )
        return [self._parse_account(item.get("account", {}), item.get("pubkey", "")) for item in result or []]

    async def query_account_info(self, address: str) -> LedgerAccount | None:
        result = await self._call(
            "getAccountInfo",
            [
                address,
                {"commitment": self.config.commitment, "encoding": "jsonParsed"},
            ],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        return self._parse_account(value, address)

    async def query_latest_checkpoint(self) -> str:
        result = await self._call(
            "getLatestBlockhash",
            [{"commitment": self.config.commitment}],
        )
        blockhash = ((result or {}).get("value") or {}).get("blockhash")
        if not blockhash:
            raise LedgerUnavailableError(
                message="No checkpoint returned",
                source=self.name,
            )
        return blockhash

    @staticmethod
    def _parse_account(data: dict[str, Any], address: str) -> LedgerAccount:
        return LedgerAccount(
            address=address,
            owner=data.get("owner"),
            lamports=data.get("lamports", 0),
            data=data.get("data"),
        )

    async def __aenter__(self) -> "RpcLedgerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
