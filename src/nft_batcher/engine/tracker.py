"""
Confirmation Tracker - waits for a submitted transaction to settle.
"""

import asyncio
from typing import Optional

import structlog

from nft_batcher.core.result import ConfirmationRecord
from nft_batcher.engine.policy import SchedulePolicy, Sleep
from nft_batcher.ledger.interface import LedgerError, LedgerInterface, TxStatus

logger = structlog.get_logger(__name__)


class ConfirmationTracker:
    """
    Polls the ledger until a transaction reaches a terminal status.

    A poll makes at most ``max_attempts`` status queries with ``interval``
    seconds between them. Exhausting the attempts yields a Timeout record,
    which means the outcome is unknown, not that the transaction failed.
    """

    def __init__(
        self,
        ledger: LedgerInterface,
        policy: SchedulePolicy,
        sleep: Optional[Sleep] = None,
    ):
        self.ledger = ledger
        self.policy = policy
        self._sleep = sleep or asyncio.sleep

    async def poll(
        self,
        txid: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> ConfirmationRecord:
        """
        Poll a transaction to a terminal status.

        Args:
            txid: Transaction identifier
            interval: Seconds between queries (policy interval if not given)
            max_attempts: Maximum number of queries (policy bound if not given)

        Returns:
            ConfirmationRecord with status success, aborted or timeout

        Raises:
            ValueError: If ``max_attempts`` is less than 1
        """
        interval = self.policy.interval if interval is None else interval
        max_attempts = self.policy.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            try:
                status = await self.ledger.get_transaction_status(txid)
            except LedgerError as e:
                logger.warning("status_query_failed", txid=txid, attempt=attempt, error=str(e))
                status = None

            if status == TxStatus.SUCCESS:
                logger.info("tx_confirmed", txid=txid, attempts=attempt)
                return ConfirmationRecord.success(attempts=attempt)

            if status in (TxStatus.ABORT_BY_RESPONSE, TxStatus.ABORT_BY_POST_CONDITION):
                logger.warning("tx_aborted", txid=txid, reason=status.value, attempts=attempt)
                return ConfirmationRecord.aborted(status.value, attempts=attempt)

            if attempt < max_attempts:
                await self._sleep(interval)

        logger.warning("tx_confirmation_timeout", txid=txid, attempts=max_attempts)
        return ConfirmationRecord.timeout(attempts=max_attempts)
