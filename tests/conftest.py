"""
Pytest configuration and shared fixtures for the test suite.
"""

import hashlib
import json
from typing import Dict, List, Optional

import pytest

from nft_batcher.config import BatcherConfig, NetworkType
from nft_batcher.core.catalog import OperationKind
from nft_batcher.core.request import OperationRequest, TransactionIntent
from nft_batcher.ledger.interface import AccountInfo, LedgerInterface, TxStatus
from nft_batcher.tx.signer import SignedTransaction, SignerError, TransactionSigner


SENDER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
DEPLOYER = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
RECIPIENT = "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC"
NFT_CONTRACT = f"{DEPLOYER}.example-nft"


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> BatcherConfig:
    """Create a test configuration."""
    return BatcherConfig(
        network=NetworkType.DEVNET,
        sender_address=SENDER,
        contract_address=DEPLOYER,
        signer_url="http://signer.test",
        min_submission_delay_seconds=0,
        confirmation_poll_interval_seconds=0,
        confirmation_max_attempts=5,
        max_network_retries=3,
        retry_base_delay_seconds=1.0,
        retry_backoff_multiplier=2.0,
        log_level="DEBUG",
    )


# ============================================================================
# Test Data Generators
# ============================================================================

def txid_for(raw: bytes) -> str:
    """Deterministic txid of a fake signed payload."""
    return "0x" + hashlib.sha256(raw).hexdigest()


def listing_request(token_id: int, price: int = 1_000_000) -> OperationRequest:
    """Create a create-listing request."""
    return OperationRequest.create(
        OperationKind.CREATE_LISTING,
        nft_contract=NFT_CONTRACT,
        token_id=token_id,
        price=price,
    )


def listing_requests(count: int) -> List[OperationRequest]:
    """Create listing requests for tokens 1..count."""
    return [listing_request(i, price=1_000_000 * i) for i in range(1, count + 1)]


# ============================================================================
# Fake Signer
# ============================================================================

class FakeSigner(TransactionSigner):
    """Signer that serializes the intent instead of signing it."""

    def __init__(self, fail_nonces: Optional[set] = None):
        self.signed: List[TransactionIntent] = []
        self.fail_nonces = fail_nonces or set()
        self.closed = False

    async def sign(self, intent: TransactionIntent) -> SignedTransaction:
        if intent.nonce in self.fail_nonces:
            raise SignerError(f"refusing to sign nonce {intent.nonce}")
        self.signed.append(intent)
        raw = json.dumps(intent.to_dict(), sort_keys=True).encode()
        return SignedTransaction(txid=txid_for(raw), raw=raw)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


# ============================================================================
# Mock Ledger
# ============================================================================

class MockLedger(LedgerInterface):
    """
    In-memory ledger for testing.

    Submissions are accepted unless a failure is scripted: ``submit_errors``
    are raised by successive submit calls (None entries accept), and
    ``rejections_by_nonce`` are raised once for the payload with that nonce.
    """

    def __init__(self, nonce: int = 0, balance: int = 100_000_000):
        self.account_nonce = nonce
        self.balance = balance
        self.account_queries = 0
        self.account_errors: List[Exception] = []

        self.submit_calls = 0
        self.submit_errors: List[Optional[Exception]] = []
        self.rejections_by_nonce: Dict[int, Exception] = {}
        self.accepted: List[dict] = []
        self.known_txids: set = set()

        self.statuses: Dict[str, List[Optional[TxStatus]]] = {}
        self.default_status: Optional[TxStatus] = TxStatus.SUCCESS
        self.status_queries: Dict[str, int] = {}
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_account(self, address: str) -> AccountInfo:
        self.account_queries += 1
        if self.account_errors:
            raise self.account_errors.pop(0)
        return AccountInfo(address=address, nonce=self.account_nonce, balance=self.balance)

    async def submit_transaction(self, raw_tx: bytes) -> str:
        self.submit_calls += 1
        if self.submit_errors:
            error = self.submit_errors.pop(0)
            if error is not None:
                raise error

        payload = json.loads(raw_tx)
        error = self.rejections_by_nonce.pop(payload["nonce"], None)
        if error is not None:
            raise error

        txid = txid_for(raw_tx)
        self.accepted.append(payload)
        self.known_txids.add(txid)
        return txid

    async def get_transaction_status(self, txid: str) -> Optional[TxStatus]:
        self.status_queries[txid] = self.status_queries.get(txid, 0) + 1
        script = self.statuses.get(txid)
        if script:
            return script.pop(0) if len(script) > 1 else script[0]
        if txid in self.known_txids:
            return self.default_status
        return None

    @property
    def accepted_nonces(self) -> List[int]:
        return [payload["nonce"] for payload in self.accepted]


@pytest.fixture
def mock_ledger() -> MockLedger:
    """Create a mock ledger with base nonce 10."""
    return MockLedger(nonce=10)


# ============================================================================
# Sleep Recorder
# ============================================================================

class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()
