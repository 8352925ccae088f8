"""
Abstract interface for ledger integration.

Defines the contract for ledger access that all ledger adapters must implement.
Only the three calls used by the batch workflows are covered.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class AccountInfo:
    """Account state returned by the ledger."""
    address: str
    nonce: int          # Next nonce the ledger expects
    balance: int        # Micro-STX


class TxStatus(str, Enum):
    """Ledger status of a submitted transaction."""
    PENDING = "pending"
    SUCCESS = "success"
    ABORT_BY_RESPONSE = "abort_by_response"
    ABORT_BY_POST_CONDITION = "abort_by_post_condition"

    @property
    def is_terminal(self) -> bool:
        return self != TxStatus.PENDING


class RejectionKind(str, Enum):
    """Categories of a structured submit rejection."""
    MALFORMED = "malformed"
    NONCE_CONFLICT = "nonce_conflict"
    POST_CONDITION = "post_condition"
    TRANSIENT = "transient"
    DUPLICATE = "duplicate"


class LedgerInterface(ABC):
    """
    Abstract interface for ledger access.

    This interface defines all ledger operations needed by the batcher:
    - Account queries (nonce seeding)
    - Transaction submission
    - Transaction status queries (confirmation polling)
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the ledger API.

        Raises:
            LedgerConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the ledger API."""
        pass

    @abstractmethod
    async def get_account(self, address: str) -> AccountInfo:
        """
        Get the current nonce and balance of an account.

        Args:
            address: Account address

        Returns:
            Current account state

        Raises:
            LedgerConnectionError: If the ledger cannot be reached
        """
        pass

    @abstractmethod
    async def submit_transaction(self, raw_tx: bytes) -> str:
        """
        Submit a signed transaction.

        Args:
            raw_tx: Serialized signed transaction

        Returns:
            Transaction identifier

        Raises:
            SubmitRejection: If the ledger rejects the transaction
            LedgerConnectionError: If the request did not complete
        """
        pass

    @abstractmethod
    async def get_transaction_status(self, txid: str) -> Optional[TxStatus]:
        """
        Get the status of a transaction.

        Args:
            txid: Transaction identifier

        Returns:
            The status, or None if the ledger does not know the transaction

        Raises:
            LedgerConnectionError: If the ledger cannot be reached
        """
        pass


class LedgerError(Exception):
    """Base class for ledger errors."""
    pass


class LedgerConnectionError(LedgerError):
    """Raised when a ledger request fails at the transport level."""
    pass


class SubmitRejection(LedgerError):
    """Raised when the ledger rejects a submitted transaction."""

    def __init__(
        self,
        message: str,
        kind: RejectionKind = RejectionKind.MALFORMED,
        reason: Optional[str] = None,
        txid: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.reason = reason
        self.txid = txid
