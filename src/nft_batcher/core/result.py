"""
Batch outcome models.

Tagged result types returned by the broadcaster and confirmation tracker,
and the ordered BatchResult produced by the orchestrator.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from nft_batcher.core.request import OperationRequest


class FailureKind(str, Enum):
    """Classification of a failed item."""
    VALIDATION_ERROR = "validation_error"               # Rejected locally, never sent
    VALIDATION_REJECTION = "validation_rejection"       # Ledger rejected the call
    NONCE_CONFLICT = "nonce_conflict"                   # Nonce already used or out of order
    NETWORK_ERROR = "network_error"                     # Transport failure after retries
    POST_CONDITION_FAILURE = "post_condition_failure"   # Ledger safety check failed


@dataclass(frozen=True)
class Submitted:
    """The ledger accepted the transaction."""
    txid: str
    duplicate: bool = False

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict:
        return {"result": "submitted", "txid": self.txid, "duplicate": self.duplicate}


@dataclass(frozen=True)
class Failed:
    """The transaction was not accepted."""
    kind: FailureKind
    detail: str

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {"result": "failed", "kind": self.kind.value, "detail": self.detail}


BroadcastOutcome = Union[Submitted, Failed]


def outcome_from_dict(data: Optional[Mapping[str, Any]]) -> Optional[BroadcastOutcome]:
    """Rebuild a broadcast outcome from its to_dict form."""
    if not data:
        return None
    if data["result"] == "submitted":
        return Submitted(data["txid"], duplicate=data.get("duplicate", False))
    return Failed(FailureKind(data["kind"]), data.get("detail", ""))


class ConfirmationStatus(str, Enum):
    """Terminal outcome of confirmation polling."""
    SUCCESS = "success"
    ABORTED = "aborted"
    TIMEOUT = "timeout"     # Outcome unknown, needs manual follow-up


@dataclass(frozen=True)
class ConfirmationRecord:
    """Result of polling a submitted transaction."""
    status: ConfirmationStatus
    reason: Optional[str] = None
    attempts: int = 0

    @classmethod
    def success(cls, attempts: int = 0) -> "ConfirmationRecord":
        return cls(ConfirmationStatus.SUCCESS, attempts=attempts)

    @classmethod
    def aborted(cls, reason: str, attempts: int = 0) -> "ConfirmationRecord":
        return cls(ConfirmationStatus.ABORTED, reason=reason, attempts=attempts)

    @classmethod
    def timeout(cls, attempts: int = 0) -> "ConfirmationRecord":
        return cls(ConfirmationStatus.TIMEOUT, attempts=attempts)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConfirmationRecord":
        return cls(
            ConfirmationStatus(data["status"]),
            reason=data.get("reason"),
            attempts=data.get("attempts", 0),
        )


class EntryStatus(str, Enum):
    """Status of one batch entry."""
    SUBMITTED = "submitted"
    FAILED = "failed"
    SKIPPED = "skipped"


class OutcomeCategory(str, Enum):
    """Aggregate category used by the reporter."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SKIPPED = "skipped"


@dataclass
class BatchEntry:
    """
    Result of one request in a batch.

    Attributes:
        index: Position of the request in the input sequence
        request: The request itself
        status: Whether the request was submitted, failed or skipped
        nonce: Nonce used for the final submission attempt
        outcome: Broadcast outcome (None for skipped entries)
        confirmation: Confirmation record (only when confirmation was requested)
        detail: Free-form note (e.g. why an entry was skipped)
    """

    index: int
    request: OperationRequest
    status: EntryStatus
    nonce: Optional[int] = None
    outcome: Optional[BroadcastOutcome] = None
    confirmation: Optional[ConfirmationRecord] = None
    detail: Optional[str] = None

    @classmethod
    def skipped(cls, index: int, request: OperationRequest, detail: str) -> "BatchEntry":
        return cls(index=index, request=request, status=EntryStatus.SKIPPED, detail=detail)

    @property
    def txid(self) -> Optional[str]:
        if isinstance(self.outcome, Submitted):
            return self.outcome.txid
        return None

    @property
    def category(self) -> OutcomeCategory:
        """Classify this entry for reporting."""
        if self.status == EntryStatus.SKIPPED:
            return OutcomeCategory.SKIPPED
        if self.status == EntryStatus.FAILED:
            return OutcomeCategory.FAILED
        if self.confirmation is not None:
            if self.confirmation.status == ConfirmationStatus.ABORTED:
                return OutcomeCategory.FAILED
            if self.confirmation.status == ConfirmationStatus.TIMEOUT:
                return OutcomeCategory.TIMED_OUT
        return OutcomeCategory.SUCCEEDED

    @property
    def is_failure(self) -> bool:
        return self.category == OutcomeCategory.FAILED

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "index": self.index,
            "request": self.request.to_dict(),
            "status": self.status.value,
            "category": self.category.value,
            "nonce": self.nonce,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "confirmation": self.confirmation.to_dict() if self.confirmation else None,
            "detail": self.detail,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BatchEntry":
        """Create from a dictionary produced by to_dict (``category`` is derived, not read)."""
        confirmation = data.get("confirmation")
        return cls(
            index=data["index"],
            request=OperationRequest.from_dict(data["request"]),
            status=EntryStatus(data["status"]),
            nonce=data.get("nonce"),
            outcome=outcome_from_dict(data.get("outcome")),
            confirmation=ConfirmationRecord.from_dict(confirmation) if confirmation else None,
            detail=data.get("detail"),
        )


@dataclass
class BatchResult:
    """
    Ordered results of one batch run.

    Entries keep the order of the input requests; a run never drops or
    reorders entries. A fatal error (e.g. the starting nonce could not be
    read) leaves the entry list empty.
    """

    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    account: Optional[str] = None
    base_nonce: Optional[int] = None
    entries: List[BatchEntry] = field(default_factory=list)
    cancelled: bool = False
    fatal_error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    def append(self, entry: BatchEntry) -> None:
        self.entries.append(entry)

    @property
    def size(self) -> int:
        return len(self.entries)

    @property
    def completed(self) -> bool:
        return not self.cancelled and self.fatal_error is None

    @property
    def nonces(self) -> List[int]:
        """Nonces used by submitted and failed entries, in order."""
        return [e.nonce for e in self.entries if e.nonce is not None]

    def mark_finished(self) -> None:
        self.finished_at = datetime.utcnow()

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "account": self.account,
            "base_nonce": self.base_nonce,
            "cancelled": self.cancelled,
            "fatal_error": self.fatal_error,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "entries": [e.to_dict() for e in self.entries],
        }

    def __repr__(self) -> str:
        return f"BatchResult(id={self.run_id[:8]}..., entries={self.size}, cancelled={self.cancelled})"
