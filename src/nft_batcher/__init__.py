"""
NFT Batcher

Batch submitter for NFT marketplace contract calls on the Stacks ledger.
Takes an ordered list of operations, assigns each a locally tracked nonce,
submits them one by one with classified failure handling and reports the
outcome of every item.
"""

__version__ = "0.1.0"

from nft_batcher.core.orchestrator import BatchOrchestrator, RunOptions
from nft_batcher.core.request import OperationRequest
from nft_batcher.core.result import BatchEntry, BatchResult, EntryStatus
from nft_batcher.core.report import Report, ResultReporter

__all__ = [
    "BatchOrchestrator",
    "RunOptions",
    "OperationRequest",
    "BatchEntry",
    "BatchResult",
    "EntryStatus",
    "Report",
    "ResultReporter",
]
