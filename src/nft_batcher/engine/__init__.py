"""
Submission engine components.

- NonceAllocator: issues sequence numbers for one account
- Broadcaster: signs and submits intents with classified failures
- ConfirmationTracker: polls submissions to a terminal status
"""

from nft_batcher.engine.broadcaster import Broadcaster
from nft_batcher.engine.nonce import NonceAllocator
from nft_batcher.engine.policy import SchedulePolicy
from nft_batcher.engine.tracker import ConfirmationTracker

__all__ = [
    "Broadcaster",
    "NonceAllocator",
    "SchedulePolicy",
    "ConfirmationTracker",
]
