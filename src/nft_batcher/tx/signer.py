"""
Transaction Signer - turns intents into signed payloads.

Key management is not handled here: signing is an opaque capability that
the batcher reaches through the TransactionSigner interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from nft_batcher.config import BatcherConfig
from nft_batcher.core.request import TransactionIntent

logger = structlog.get_logger(__name__)


class SignerError(Exception):
    """Raised when an intent cannot be signed."""
    pass


@dataclass(frozen=True)
class SignedTransaction:
    """A serialized, signed transaction and its identifier."""
    txid: str
    raw: bytes

    @property
    def raw_hex(self) -> str:
        return self.raw.hex()


class TransactionSigner(ABC):
    """Signs transaction intents on behalf of the batch account."""

    @abstractmethod
    async def sign(self, intent: TransactionIntent) -> SignedTransaction:
        """
        Sign a nonce-assigned intent.

        Args:
            intent: The intent to sign (nonce must be set)

        Returns:
            Signed transaction

        Raises:
            SignerError: If the intent cannot be signed
        """
        pass


class RemoteSigner(TransactionSigner):
    """
    Signer backed by an external signing service.

    The service receives the intent as JSON at ``POST /sign`` and answers
    with ``{"txid": ..., "tx_hex": ...}``. The private key never enters
    this process.
    """

    def __init__(
        self,
        config: BatcherConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the remote signer.

        Args:
            config: Batcher configuration (signer_url must be set)
            transport: Custom httpx transport (used by tests)
        """
        if not config.signer_url:
            raise ValueError("No signer URL configured")

        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.signer_url.rstrip("/"),
            timeout=config.request_timeout_seconds,
            transport=transport,
        )

    async def sign(self, intent: TransactionIntent) -> SignedTransaction:
        """Send the intent to the signing service."""
        if intent.nonce is None:
            raise SignerError("Cannot sign an intent without a nonce")

        try:
            response = await self._client.post("/sign", json=intent.to_dict())
        except httpx.RequestError as e:
            raise SignerError(f"Signer request failed: {e}") from e

        if response.status_code != 200:
            raise SignerError(f"Signer error {response.status_code}: {response.text}")

        try:
            data = response.json()
            signed = SignedTransaction(
                txid=data["txid"],
                raw=bytes.fromhex(data["tx_hex"].removeprefix("0x")),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise SignerError(f"Malformed signer response: {e}") from e

        logger.debug("transaction_signed", txid=signed.txid, nonce=intent.nonce)
        return signed

    async def close(self) -> None:
        await self._client.aclose()
