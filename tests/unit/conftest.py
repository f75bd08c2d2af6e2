"""Unit test fixtures with HTTP mocking and stub sources."""

from __future__ import annotations

import asyncio
from typing import Any, ClassVar

import pytest
import respx
from httpx import Response

from ledgerstate.core.models import CollectionState
from ledgerstate.core.types import SourceKind
from ledgerstate.resolution.base import ResolutionSource, SourceConfig

# ============================================================================
# HTTP Mocking Fixtures
# ============================================================================


@pytest.fixture
def respx_mock():
    """Provide a respx mock router for HTTP mocking.

    Use this when you need fine-grained control over mocked responses.
    The mock is automatically started and stopped by respx.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


# ============================================================================
# Mock Response Helpers
# ============================================================================


def rpc_result(result: Any, request_id: int = 1) -> Response:
    """Create a JSON-RPC success response."""
    return Response(200, json={"jsonrpc": "2.0", "id": request_id, "result": result})


def rpc_error(code: int, message: str, request_id: int = 1) -> Response:
    """Create a JSON-RPC error response."""
    return Response(
        200,
        json={"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}},
    )


def token_account(pubkey: str, owner: str | None) -> dict[str, Any]:
    """Create a parsed token account entry as returned by getProgramAccounts."""
    data: Any = ["", "base64"]
    if owner is not None:
        data = {"parsed": {"info": {"owner": owner}, "type": "account"}, "program": "spl-token"}
    return {
        "pubkey": pubkey,
        "account": {
            "owner": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
            "lamports": 2039280,
            "data": data,
        },
    }


@pytest.fixture
def mock_responses():
    """Provide helper functions for creating mock responses."""
    return {
        "result": rpc_result,
        "error": rpc_error,
        "token_account": token_account,
    }


# ============================================================================
# Stub Source for Resolver Tests
# ============================================================================


class StubSource(ResolutionSource):
    """Source returning a fixed result, raising a fixed error, or hanging."""

    SOURCE_KIND: ClassVar[SourceKind] = SourceKind.AGGREGATOR

    def __init__(
        self,
        name: str,
        result: CollectionState | BaseException | None = None,
        *,
        base_confidence: int = 85,
        priority: int = 100,
        delay: float = 0.0,
        timeout: float = 1.0,
        enabled: bool = True,
    ) -> None:
        super().__init__(
            SourceConfig(timeout=timeout, enabled=enabled, base_confidence=base_confidence),
            name=name,
        )
        self.result = result
        self.delay = delay
        self._priority = priority
        self.calls = 0
        self.closed = False

    @property
    def priority(self) -> int:
        return self._priority

    async def fetch(self, name: str) -> CollectionState | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_source():
    """Factory fixture for stub sources."""
    return StubSource
