"""
Ledger integration layer.

Provides an abstract interface for ledger access and the Hiro API adapter.
"""

from nft_batcher.ledger.interface import (
    AccountInfo,
    LedgerConnectionError,
    LedgerError,
    LedgerInterface,
    SubmitRejection,
    TxStatus,
)
from nft_batcher.ledger.hiro import HiroLedgerAdapter

__all__ = [
    "AccountInfo",
    "LedgerConnectionError",
    "LedgerError",
    "LedgerInterface",
    "SubmitRejection",
    "TxStatus",
    "HiroLedgerAdapter",
]
