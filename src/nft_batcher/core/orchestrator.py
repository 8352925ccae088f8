"""
Batch Orchestrator.

Drives an ordered sequence of operation requests through the builder,
nonce allocator, broadcaster and (optionally) confirmation tracker.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from nft_batcher.config import BatcherConfig
from nft_batcher.core.request import OperationRequest, TransactionIntent
from nft_batcher.core.result import (
    BatchEntry,
    BatchResult,
    EntryStatus,
    Failed,
    FailureKind,
)
from nft_batcher.engine.broadcaster import Broadcaster
from nft_batcher.engine.nonce import NonceAllocator
from nft_batcher.engine.policy import SchedulePolicy, Sleep
from nft_batcher.engine.tracker import ConfirmationTracker
from nft_batcher.ledger.interface import LedgerError, LedgerInterface
from nft_batcher.tx.builder import TransactionBuilder, ValidationError
from nft_batcher.tx.signer import TransactionSigner

logger = structlog.get_logger(__name__)


@dataclass
class RunOptions:
    """
    Per-run policy knobs.

    Attributes:
        wait_for_confirmation: Poll each submission to a terminal status
        stop_on_first_failure: Record the rest of the batch as skipped after a failure
        min_submission_delay: Seconds to pause between consecutive submissions
        poll_interval: Confirmation poll interval (tracker policy if None)
        poll_max_attempts: Confirmation poll bound (tracker policy if None)
    """
    wait_for_confirmation: bool = False
    stop_on_first_failure: bool = False
    min_submission_delay: float = 2.0
    poll_interval: Optional[float] = None
    poll_max_attempts: Optional[int] = None

    def __post_init__(self):
        if self.poll_max_attempts is not None and self.poll_max_attempts < 1:
            raise ValueError(f"poll_max_attempts must be at least 1, got {self.poll_max_attempts}")

    @classmethod
    def from_config(cls, config: BatcherConfig) -> "RunOptions":
        return cls(
            wait_for_confirmation=config.wait_for_confirmation,
            stop_on_first_failure=config.stop_on_first_failure,
            min_submission_delay=config.min_submission_delay_seconds,
            poll_interval=config.confirmation_poll_interval_seconds,
            poll_max_attempts=config.confirmation_max_attempts,
        )


class CheckpointStore(ABC):
    """
    Receives progress after every processed item.

    ``entry`` is the item's final BatchEntry; stores keep it so a resumed
    run can report the outcomes of items processed before the interruption.
    """

    @abstractmethod
    async def save_checkpoint(
        self,
        run_id: str,
        account: str,
        index: int,
        next_nonce: Optional[int],
        entry: Optional[BatchEntry] = None,
    ) -> None:
        pass


class BatchOrchestrator:
    """
    Sequential batch submitter for one account.

    Guarantees:
    - one entry per input request, in input order, even when items fail
    - nonces are seeded once and issued locally in submission order
    - a failed item never aborts the rest of the batch (unless
      ``stop_on_first_failure`` is set, in which case the rest is skipped)

    Usage:
        ```python
        orchestrator = BatchOrchestrator(config, ledger=ledger, signer=signer)
        result = await orchestrator.run(requests)
        ```
    """

    def __init__(
        self,
        config: BatcherConfig,
        ledger: LedgerInterface,
        signer: TransactionSigner,
        builder: Optional[TransactionBuilder] = None,
        broadcaster: Optional[Broadcaster] = None,
        tracker: Optional[ConfirmationTracker] = None,
        checkpoint_store: Optional[CheckpointStore] = None,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Batcher configuration
            ledger: Ledger interface
            signer: Transaction signer
            builder: Custom transaction builder
            broadcaster: Custom broadcaster
            tracker: Custom confirmation tracker
            checkpoint_store: Optional store notified after every item
            sleep: Awaitable pause used for pacing and retries (asyncio.sleep by default)
        """
        self.config = config
        self.ledger = ledger
        self._sleep = sleep or asyncio.sleep

        self.builder = builder or TransactionBuilder(config)
        self.broadcaster = broadcaster or Broadcaster(
            ledger,
            signer,
            SchedulePolicy.network_retry(config),
            sleep=self._sleep,
        )
        self.tracker = tracker or ConfirmationTracker(
            ledger,
            SchedulePolicy.confirmation(config),
            sleep=self._sleep,
        )
        self.checkpoint_store = checkpoint_store

    async def run(
        self,
        requests: Iterable[OperationRequest],
        options: Optional[RunOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
        start_index: int = 0,
        run_id: Optional[str] = None,
        previous_entries: Optional[Iterable[BatchEntry]] = None,
    ) -> BatchResult:
        """
        Process a batch of requests in order.

        Args:
            requests: Ordered requests
            options: Run options (taken from the configuration if not provided)
            cancel_event: Set to stop before the next submission
            start_index: Requests before this index are not processed again (resume)
            run_id: Identifier for the run (generated if not provided)
            previous_entries: Entries recorded for earlier items of the same run;
                they are carried into the result, and items before
                ``start_index`` without one are recorded as skipped

        Returns:
            BatchResult with one entry per processed or skipped request
        """
        options = options or RunOptions.from_config(self.config)
        requests = list(requests)
        carried = {
            entry.index: entry
            for entry in previous_entries or ()
            if entry.index < start_index
        }

        result = BatchResult(account=self.config.sender_address)
        if run_id:
            result.run_id = run_id

        if not self.config.sender_address:
            result.fatal_error = "no sender address configured"
            result.mark_finished()
            logger.error("batch_aborted", run_id=result.run_id, error=result.fatal_error)
            return result

        allocator = NonceAllocator(self.ledger)
        try:
            result.base_nonce = await allocator.seed(self.config.sender_address)
        except LedgerError as e:
            result.fatal_error = f"unable to seed nonce: {e}"
            result.mark_finished()
            logger.error("batch_aborted", run_id=result.run_id, error=result.fatal_error)
            return result

        logger.info(
            "batch_started",
            run_id=result.run_id,
            size=len(requests),
            base_nonce=result.base_nonce,
            start_index=start_index,
            carried=len(carried),
        )

        submitted_any = False
        stopped = False

        for index, request in enumerate(requests):
            if index < start_index:
                previous = carried.get(index)
                if previous is None:
                    previous = BatchEntry.skipped(index, request, "completed in previous run")
                result.append(previous)
                continue

            if stopped:
                result.append(BatchEntry.skipped(index, request, "stopped after earlier failure"))
                continue

            if self._cancelled(cancel_event):
                result.cancelled = True
                break

            try:
                intent = self.builder.build(request)
            except ValidationError as e:
                entry = BatchEntry(
                    index=index,
                    request=request,
                    status=EntryStatus.FAILED,
                    outcome=Failed(FailureKind.VALIDATION_ERROR, str(e)),
                )
            else:
                if submitted_any and options.min_submission_delay > 0:
                    await self._sleep(options.min_submission_delay)

                if self._cancelled(cancel_event):
                    result.cancelled = True
                    break

                entry = await self._process(index, request, intent, allocator, options)
                submitted_any = True

            result.append(entry)
            self._log_entry(entry)
            await self._save_checkpoint(result, entry, allocator)

            if options.stop_on_first_failure and entry.is_failure:
                logger.warning("batch_stopping", run_id=result.run_id, failed_index=index)
                stopped = True

        result.mark_finished()
        logger.info(
            "batch_finished",
            run_id=result.run_id,
            entries=result.size,
            cancelled=result.cancelled,
        )
        return result

    async def _process(
        self,
        index: int,
        request: OperationRequest,
        intent: TransactionIntent,
        allocator: NonceAllocator,
        options: RunOptions,
    ) -> BatchEntry:
        """Allocate, submit (with one nonce-conflict retry) and optionally confirm."""
        nonce = allocator.next()
        outcome = await self.broadcaster.submit(intent.with_nonce(nonce))

        if isinstance(outcome, Failed) and outcome.kind == FailureKind.NONCE_CONFLICT:
            logger.warning("nonce_conflict", index=index, nonce=nonce)
            try:
                await allocator.resync()
            except LedgerError as e:
                return BatchEntry(
                    index=index,
                    request=request,
                    status=EntryStatus.FAILED,
                    nonce=nonce,
                    outcome=Failed(FailureKind.NONCE_CONFLICT, f"{outcome.detail}; resync failed: {e}"),
                )
            if options.min_submission_delay > 0:
                await self._sleep(options.min_submission_delay)
            nonce = allocator.next()
            outcome = await self.broadcaster.submit(intent.with_nonce(nonce))

        if isinstance(outcome, Failed):
            return BatchEntry(
                index=index,
                request=request,
                status=EntryStatus.FAILED,
                nonce=nonce,
                outcome=outcome,
            )

        confirmation = None
        if options.wait_for_confirmation:
            confirmation = await self.tracker.poll(
                outcome.txid,
                interval=options.poll_interval,
                max_attempts=options.poll_max_attempts,
            )

        return BatchEntry(
            index=index,
            request=request,
            status=EntryStatus.SUBMITTED,
            nonce=nonce,
            outcome=outcome,
            confirmation=confirmation,
        )

    async def _save_checkpoint(
        self,
        result: BatchResult,
        entry: BatchEntry,
        allocator: NonceAllocator,
    ) -> None:
        if not self.checkpoint_store:
            return

        try:
            await self.checkpoint_store.save_checkpoint(
                result.run_id,
                result.account,
                entry.index,
                allocator.peek,
                entry=entry,
            )
        except Exception as e:
            logger.error("checkpoint_failed", run_id=result.run_id, index=entry.index, error=str(e))

    @staticmethod
    def _cancelled(cancel_event: Optional[asyncio.Event]) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    @staticmethod
    def _log_entry(entry: BatchEntry) -> None:
        if entry.status == EntryStatus.SUBMITTED:
            logger.info(
                "item_submitted",
                index=entry.index,
                kind=entry.request.kind,
                nonce=entry.nonce,
                txid=entry.txid,
                confirmation=entry.confirmation.status.value if entry.confirmation else None,
            )
        else:
            logger.warning(
                "item_failed",
                index=entry.index,
                kind=entry.request.kind,
                nonce=entry.nonce,
                error=entry.outcome.detail if isinstance(entry.outcome, Failed) else None,
            )
