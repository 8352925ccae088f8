"""
Nonce Allocator - issues sequence numbers for one account.

The ledger is queried once when the allocator is seeded; afterwards
nonces are handed out locally as base, base+1, ... so that items
submitted before their predecessors confirm never receive duplicates.
This assumes a single writer per account per batch.
"""

from typing import Optional

import structlog

from nft_batcher.ledger.interface import LedgerInterface

logger = structlog.get_logger(__name__)


class NonceAllocator:
    """
    Strictly increasing nonce source for one account.

    Use one instance per account per batch; it holds no locks.
    """

    def __init__(self, ledger: LedgerInterface):
        """
        Initialize the allocator.

        Args:
            ledger: Ledger used for the account queries
        """
        self.ledger = ledger
        self._address: Optional[str] = None
        self._base: Optional[int] = None
        self._next: Optional[int] = None
        self._issued = 0
        self._resyncs = 0

    async def seed(self, address: str) -> int:
        """
        Read the account's current nonce from the ledger.

        Args:
            address: Account address

        Returns:
            The base nonce

        Raises:
            LedgerError: If the account query fails
        """
        account = await self.ledger.get_account(address)
        self._address = address
        self._base = account.nonce
        self._next = account.nonce
        logger.info("nonce_seeded", address=address, base_nonce=self._base)
        return self._base

    def next(self) -> int:
        """
        Issue the next nonce without querying the ledger.

        Raises:
            RuntimeError: If the allocator has not been seeded
        """
        if self._next is None:
            raise RuntimeError("Nonce allocator not seeded")

        nonce = self._next
        self._next += 1
        self._issued += 1
        return nonce

    async def resync(self) -> int:
        """
        Re-read the account nonce after a conflict and resume from it.

        Returns:
            The new base nonce
        """
        if self._address is None:
            raise RuntimeError("Nonce allocator not seeded")

        previous = self._next
        account = await self.ledger.get_account(self._address)
        self._base = account.nonce
        self._next = account.nonce
        self._resyncs += 1
        logger.warning(
            "nonce_resynced",
            address=self._address,
            previous_next=previous,
            new_base=self._base,
        )
        return self._base

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def base(self) -> Optional[int]:
        return self._base

    @property
    def peek(self) -> Optional[int]:
        """The nonce the next call to next() will return."""
        return self._next

    @property
    def is_seeded(self) -> bool:
        return self._next is not None

    def get_stats(self) -> dict:
        return {
            "address": self._address,
            "base_nonce": self._base,
            "next_nonce": self._next,
            "issued": self._issued,
            "resyncs": self._resyncs,
        }
