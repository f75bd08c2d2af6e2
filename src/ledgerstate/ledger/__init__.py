"""Adapters for the remote ledger query API."""

from .client import (
    LedgerClient,
    LedgerClientConfig,
    RpcLedgerClient,
    data_size_filter,
    memcmp_filter,
)
from .scanner import TOKEN_PROGRAM_ID, LedgerScanner, ScanResult

__all__ = [
    "LedgerClient",
    "LedgerClientConfig",
    "LedgerScanner",
    "RpcLedgerClient",
    "ScanResult",
    "TOKEN_PROGRAM_ID",
    "data_size_filter",
    "memcmp_filter",
]
