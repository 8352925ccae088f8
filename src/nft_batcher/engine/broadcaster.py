"""
Broadcaster - signs and submits intents, classifying every failure.

Every call returns a BroadcastOutcome; no submission error escapes as an
exception. Transient transport failures are retried with backoff, reusing
the same signed payload so a retry can be recognized as a duplicate.
"""

import asyncio
from typing import Optional

import structlog

from nft_batcher.core.request import TransactionIntent
from nft_batcher.core.result import BroadcastOutcome, Failed, FailureKind, Submitted
from nft_batcher.engine.policy import SchedulePolicy, Sleep
from nft_batcher.ledger.interface import (
    LedgerConnectionError,
    LedgerInterface,
    RejectionKind,
    SubmitRejection,
)
from nft_batcher.tx.signer import SignedTransaction, SignerError, TransactionSigner

logger = structlog.get_logger(__name__)

_REJECTION_FAILURES = {
    RejectionKind.MALFORMED: FailureKind.VALIDATION_REJECTION,
    RejectionKind.NONCE_CONFLICT: FailureKind.NONCE_CONFLICT,
    RejectionKind.POST_CONDITION: FailureKind.POST_CONDITION_FAILURE,
}


class Broadcaster:
    """
    Sends signed intents to the ledger.

    Failure handling:
    - validation rejection / post-condition failure: reported, not retried
    - nonce conflict: reported; the orchestrator resyncs and retries once
    - network error: retried up to ``policy.max_attempts`` times, then reported
    """

    def __init__(
        self,
        ledger: LedgerInterface,
        signer: TransactionSigner,
        policy: SchedulePolicy,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize the broadcaster.

        Args:
            ledger: Ledger to submit to
            signer: Signer for intents
            policy: Retry policy for transient failures
            sleep: Awaitable pause used between retries (asyncio.sleep by default)
        """
        self.ledger = ledger
        self.signer = signer
        self.policy = policy
        self._sleep = sleep or asyncio.sleep

    async def submit(self, intent: TransactionIntent) -> BroadcastOutcome:
        """
        Sign and submit an intent.

        Args:
            intent: Nonce-assigned intent

        Returns:
            Submitted or Failed
        """
        try:
            signed = await self.signer.sign(intent)
        except SignerError as e:
            logger.error("sign_failed", nonce=intent.nonce, error=str(e))
            return Failed(FailureKind.VALIDATION_REJECTION, f"signing failed: {e}")

        retries = 0
        while True:
            try:
                txid = await self.ledger.submit_transaction(signed.raw)
                return Submitted(txid)

            except SubmitRejection as e:
                if e.kind != RejectionKind.TRANSIENT:
                    return await self._handle_rejection(e, signed, intent, after_retry=retries > 0)
                error: Exception = e

            except LedgerConnectionError as e:
                error = e

            if retries >= self.policy.max_attempts:
                logger.error(
                    "submit_retries_exhausted",
                    nonce=intent.nonce,
                    retries=retries,
                    error=str(error),
                )
                return Failed(FailureKind.NETWORK_ERROR, str(error))

            delay = self.policy.delay_for(retries)
            retries += 1
            logger.warning(
                "network_retry",
                nonce=intent.nonce,
                retry=retries,
                delay=delay,
                error=str(error),
            )
            await self._sleep(delay)

    async def _handle_rejection(
        self,
        rejection: SubmitRejection,
        signed: SignedTransaction,
        intent: TransactionIntent,
        after_retry: bool,
    ) -> BroadcastOutcome:
        if rejection.kind == RejectionKind.DUPLICATE:
            logger.info("duplicate_submission", txid=signed.txid, nonce=intent.nonce)
            return Submitted(rejection.txid or signed.txid, duplicate=True)

        # An earlier attempt may have reached the ledger before its response was lost
        if rejection.kind == RejectionKind.NONCE_CONFLICT and after_retry:
            if await self._ledger_has(signed.txid):
                logger.info("duplicate_submission", txid=signed.txid, nonce=intent.nonce)
                return Submitted(signed.txid, duplicate=True)

        kind = _REJECTION_FAILURES[rejection.kind]
        logger.warning("submit_rejected", nonce=intent.nonce, kind=kind.value, reason=rejection.reason)
        return Failed(kind, str(rejection))

    async def _ledger_has(self, txid: str) -> bool:
        try:
            return await self.ledger.get_transaction_status(txid) is not None
        except LedgerConnectionError as e:
            logger.warning("duplicate_check_failed", txid=txid, error=str(e))
            return False
