"""
Hiro Stacks API adapter for ledger integration.

Provides ledger access via the Stacks node / Hiro API HTTP endpoints.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from nft_batcher.config import BatcherConfig
from nft_batcher.ledger.interface import (
    AccountInfo,
    LedgerConnectionError,
    LedgerInterface,
    RejectionKind,
    SubmitRejection,
    TxStatus,
)

logger = structlog.get_logger(__name__)


NONCE_REASONS = {"BadNonce", "ConflictingNonceInMempool"}
TRANSIENT_REASONS = {
    "ServerFailureDatabase",
    "ServerFailureNoSuchChainTip",
    "ServerFailureOther",
    "TooMuchChaining",
    "TemporarilyBlacklisted",
    "EstimatorError",
}
DUPLICATE_REASONS = {"AlreadyInMempool", "TransactionAlreadyKnown"}

TX_STATUSES = {
    "pending": TxStatus.PENDING,
    "success": TxStatus.SUCCESS,
    "abort_by_response": TxStatus.ABORT_BY_RESPONSE,
    "abort_by_post_condition": TxStatus.ABORT_BY_POST_CONDITION,
}


def classify_rejection(reason: Optional[str]) -> RejectionKind:
    """
    Map a node rejection reason to a rejection category.

    Args:
        reason: The ``reason`` field of the node's error body

    Returns:
        The rejection category
    """
    if not reason:
        return RejectionKind.MALFORMED
    if reason in NONCE_REASONS:
        return RejectionKind.NONCE_CONFLICT
    if reason in DUPLICATE_REASONS:
        return RejectionKind.DUPLICATE
    if reason in TRANSIENT_REASONS:
        return RejectionKind.TRANSIENT
    if "PostCondition" in reason:
        return RejectionKind.POST_CONDITION
    return RejectionKind.MALFORMED


def normalize_txid(txid: str) -> str:
    """Return a txid with a 0x prefix."""
    txid = txid.strip().strip('"')
    return txid if txid.startswith("0x") else f"0x{txid}"


class HiroLedgerAdapter(LedgerInterface):
    """
    Hiro API adapter.

    Implements the LedgerInterface using the Stacks node RPC and the Hiro
    extended API.
    """

    def __init__(
        self,
        config: BatcherConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Hiro adapter.

        Args:
            config: Batcher configuration
            transport: Custom httpx transport (used by tests)
        """
        self.config = config
        self.base_url = config.api_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=self.config.request_timeout_seconds,
            transport=self._transport,
        )
        logger.info("ledger_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("ledger_disconnected")

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> httpx.Response:
        """Make an API request, mapping transport failures to LedgerConnectionError."""
        if not self._client:
            await self.connect()

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning("ledger_request_error", path=path, error=str(e))
            raise LedgerConnectionError(f"Ledger request failed: {e}") from e

        if response.status_code >= 500 or response.status_code == 429:
            logger.warning(
                "ledger_request_failed",
                path=path,
                status=response.status_code,
                error=response.text,
            )
            raise LedgerConnectionError(
                f"Ledger API error {response.status_code}: {response.text}"
            )

        return response

    async def _get_json(self, path: str) -> Optional[Dict[str, Any]]:
        """GET a JSON object; None on 404, LedgerConnectionError on anything unusable."""
        response = await self._request("GET", path)

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            logger.error(
                "ledger_request_failed",
                path=path,
                status=response.status_code,
                error=response.text,
            )
            raise LedgerConnectionError(f"Ledger API error: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error("ledger_malformed_response", path=path, body=response.text[:200])
            raise LedgerConnectionError("malformed ledger response") from e

        if not isinstance(data, dict):
            logger.error("ledger_malformed_response", path=path, body=response.text[:200])
            raise LedgerConnectionError("malformed ledger response")

        return data

    async def get_account(self, address: str) -> AccountInfo:
        """Get the account nonce and balance."""
        data = await self._get_json(f"/v2/accounts/{address}?proof=0")

        if data is None:
            raise LedgerConnectionError(f"Account not found: {address}")

        try:
            balance = data.get("balance", "0x0")
            account = AccountInfo(
                address=address,
                nonce=int(data["nonce"]),
                balance=int(balance, 16) if isinstance(balance, str) else int(balance),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error("ledger_malformed_response", path="/v2/accounts", error=str(e))
            raise LedgerConnectionError(f"malformed ledger response: {e}") from e

        logger.debug("account_fetched", address=address, nonce=account.nonce)
        return account

    async def submit_transaction(self, raw_tx: bytes) -> str:
        """Submit a signed transaction."""
        response = await self._request(
            "POST",
            "/v2/transactions",
            content=raw_tx,
            headers={"Content-Type": "application/octet-stream"},
        )

        if response.status_code == 200:
            txid = normalize_txid(response.text)
            logger.info("tx_submitted", txid=txid)
            return txid

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}

        if not isinstance(body, dict):
            body = {"error": str(body)}

        reason = body.get("reason")
        kind = classify_rejection(reason)
        txid = normalize_txid(body["txid"]) if body.get("txid") else None

        logger.error("tx_submit_rejected", reason=reason, kind=kind.value, error=body.get("error"))
        raise SubmitRejection(
            f"Transaction rejected: {body.get('error', 'unknown error')} ({reason})",
            kind=kind,
            reason=reason,
            txid=txid,
        )

    async def get_transaction_status(self, txid: str) -> Optional[TxStatus]:
        """Get the status of a transaction."""
        data = await self._get_json(f"/extended/v1/tx/{normalize_txid(txid)}")

        if data is None:
            return None

        # Dropped transactions are reported as pending: their final outcome is unknown
        return TX_STATUSES.get(data.get("tx_status"), TxStatus.PENDING)
