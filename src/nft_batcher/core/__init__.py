"""
Core batcher components.

This module contains the operation catalog, the request and outcome
models, and result reporting. The orchestrator lives in
``nft_batcher.core.orchestrator``.
"""

from nft_batcher.core.catalog import DEFAULT_CATALOG, OperationCatalog, OperationKind
from nft_batcher.core.request import OperationRequest, TransactionIntent
from nft_batcher.core.result import (
    BatchEntry,
    BatchResult,
    ConfirmationRecord,
    EntryStatus,
    Failed,
    FailureKind,
    Submitted,
)
from nft_batcher.core.report import Report, ResultReporter

__all__ = [
    "DEFAULT_CATALOG",
    "OperationCatalog",
    "OperationKind",
    "OperationRequest",
    "TransactionIntent",
    "BatchEntry",
    "BatchResult",
    "ConfirmationRecord",
    "EntryStatus",
    "Failed",
    "FailureKind",
    "Submitted",
    "Report",
    "ResultReporter",
]
