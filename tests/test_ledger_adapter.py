"""
Test suite for the Hiro ledger adapter and the remote signer.

HTTP traffic is served by httpx.MockTransport handlers.
"""

import json

import httpx
import pytest

from nft_batcher.core.orchestrator import BatchOrchestrator, RunOptions
from nft_batcher.core.result import ConfirmationStatus, OutcomeCategory
from nft_batcher.ledger.hiro import HiroLedgerAdapter, classify_rejection, normalize_txid
from nft_batcher.ledger.interface import (
    LedgerConnectionError,
    RejectionKind,
    SubmitRejection,
    TxStatus,
)
from nft_batcher.tx.builder import TransactionBuilder
from nft_batcher.tx.signer import RemoteSigner, SignerError

from conftest import SENDER, FakeSigner, RecordingSleep, listing_request, listing_requests, txid_for

TXID = "0x" + "ab" * 32


def make_adapter(config, handler) -> HiroLedgerAdapter:
    return HiroLedgerAdapter(config, transport=httpx.MockTransport(handler))


# ============================================================================
# Test Rejection Classification
# ============================================================================

class TestClassifyRejection:
    """Tests for mapping node rejection reasons."""

    @pytest.mark.parametrize("reason,expected", [
        ("BadNonce", RejectionKind.NONCE_CONFLICT),
        ("ConflictingNonceInMempool", RejectionKind.NONCE_CONFLICT),
        ("PostConditionFailed", RejectionKind.POST_CONDITION),
        ("TooMuchChaining", RejectionKind.TRANSIENT),
        ("ServerFailureDatabase", RejectionKind.TRANSIENT),
        ("AlreadyInMempool", RejectionKind.DUPLICATE),
        ("BadFunctionArgument", RejectionKind.MALFORMED),
        ("NotEnoughFunds", RejectionKind.MALFORMED),
        (None, RejectionKind.MALFORMED),
    ])
    def test_reasons(self, reason, expected):
        assert classify_rejection(reason) == expected

    def test_normalize_txid(self):
        assert normalize_txid('"abcd"\n') == "0xabcd"
        assert normalize_txid("0xabcd") == "0xabcd"


# ============================================================================
# Test Adapter
# ============================================================================

class TestHiroLedgerAdapter:
    """Tests for the HTTP adapter."""

    def test_network_url(self, test_config):
        adapter = HiroLedgerAdapter(test_config)
        assert adapter.base_url == "http://localhost:3999"

        custom = test_config.model_copy(update={"api_base_url": "https://node.example.com/"})
        assert HiroLedgerAdapter(custom).base_url == "https://node.example.com"

    @pytest.mark.asyncio
    async def test_get_account(self, test_config):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/v2/accounts/{SENDER}"
            assert request.url.params["proof"] == "0"
            return httpx.Response(200, json={"nonce": 17, "balance": "0x0000000000000000000000000098967f"})

        adapter = make_adapter(test_config, handler)
        await adapter.connect()
        try:
            account = await adapter.get_account(SENDER)
        finally:
            await adapter.disconnect()

        assert account.nonce == 17
        assert account.balance == 9_999_999

    @pytest.mark.asyncio
    async def test_get_account_not_found(self, test_config):
        adapter = make_adapter(test_config, lambda request: httpx.Response(404))

        with pytest.raises(LedgerConnectionError):
            await adapter.get_account(SENDER)
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_submit_accepted(self, test_config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["content_type"] = request.headers["content-type"]
            seen["body"] = request.content
            return httpx.Response(200, text=f'"{TXID[2:]}"')

        adapter = make_adapter(test_config, handler)
        txid = await adapter.submit_transaction(b"\x00\x01")
        await adapter.disconnect()

        assert txid == TXID
        assert seen == {
            "path": "/v2/transactions",
            "content_type": "application/octet-stream",
            "body": b"\x00\x01",
        }

    @pytest.mark.asyncio
    async def test_submit_rejected(self, test_config):
        body = {
            "error": "transaction rejected",
            "reason": "ConflictingNonceInMempool",
            "reason_data": {},
            "txid": TXID[2:],
        }
        adapter = make_adapter(test_config, lambda request: httpx.Response(400, json=body))

        with pytest.raises(SubmitRejection) as exc_info:
            await adapter.submit_transaction(b"\x00")
        await adapter.disconnect()

        assert exc_info.value.kind == RejectionKind.NONCE_CONFLICT
        assert exc_info.value.reason == "ConflictingNonceInMempool"
        assert exc_info.value.txid == TXID

    @pytest.mark.asyncio
    async def test_submit_rejected_without_json(self, test_config):
        adapter = make_adapter(test_config, lambda request: httpx.Response(400, text="bad payload"))

        with pytest.raises(SubmitRejection) as exc_info:
            await adapter.submit_transaction(b"\x00")
        await adapter.disconnect()

        assert exc_info.value.kind == RejectionKind.MALFORMED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_server_errors_are_connection_errors(self, test_config, status):
        adapter = make_adapter(test_config, lambda request: httpx.Response(status, text="busy"))

        with pytest.raises(LedgerConnectionError):
            await adapter.submit_transaction(b"\x00")
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_transport_error(self, test_config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter = make_adapter(test_config, handler)

        with pytest.raises(LedgerConnectionError):
            await adapter.get_account(SENDER)
        await adapter.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tx_status,expected", [
        ("success", TxStatus.SUCCESS),
        ("pending", TxStatus.PENDING),
        ("abort_by_response", TxStatus.ABORT_BY_RESPONSE),
        ("abort_by_post_condition", TxStatus.ABORT_BY_POST_CONDITION),
        ("dropped_replace_by_fee", TxStatus.PENDING),
    ])
    async def test_transaction_status(self, test_config, tx_status, expected):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == f"/extended/v1/tx/{TXID}"
            return httpx.Response(200, json={"tx_id": TXID, "tx_status": tx_status})

        adapter = make_adapter(test_config, handler)
        status = await adapter.get_transaction_status(TXID[2:])
        await adapter.disconnect()

        assert status == expected

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, test_config):
        adapter = make_adapter(test_config, lambda request: httpx.Response(404))

        assert await adapter.get_transaction_status(TXID) is None
        await adapter.disconnect()


# ============================================================================
# Test Malformed Responses
# ============================================================================

class TestMalformedResponses:
    """Tests for unusable 200 responses from the ledger or a gateway in front of it."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ])
    async def test_status_body_is_connection_error(self, test_config, response):
        adapter = make_adapter(test_config, lambda request: response)

        with pytest.raises(LedgerConnectionError, match="malformed ledger response"):
            await adapter.get_transaction_status(TXID)
        await adapter.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"balance": "0x00"},
        {"nonce": "seventeen", "balance": "0x00"},
        {"nonce": 17, "balance": "not-hex"},
    ])
    async def test_account_fields_are_connection_error(self, test_config, body):
        adapter = make_adapter(test_config, lambda request: httpx.Response(200, json=body))

        with pytest.raises(LedgerConnectionError, match="malformed ledger response"):
            await adapter.get_account(SENDER)
        await adapter.disconnect()

    @pytest.mark.asyncio
    async def test_html_status_keeps_batch_result(self, test_config):
        """Test a gateway page on the status endpoint ends in timeouts, not an exception."""
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/v2/accounts/"):
                return httpx.Response(200, json={"nonce": 10, "balance": "0x00"})
            if request.url.path == "/v2/transactions":
                return httpx.Response(200, text=f'"{txid_for(request.content)[2:]}"')
            return httpx.Response(200, text="<html>gateway</html>")

        adapter = make_adapter(test_config, handler)
        orchestrator = BatchOrchestrator(
            test_config, ledger=adapter, signer=FakeSigner(), sleep=RecordingSleep(),
        )
        options = RunOptions(
            wait_for_confirmation=True,
            min_submission_delay=0,
            poll_interval=0,
            poll_max_attempts=2,
        )

        result = await orchestrator.run(listing_requests(2), options=options)
        await adapter.disconnect()

        assert result.size == 2
        assert result.nonces == [10, 11]
        for entry in result.entries:
            assert entry.txid is not None
            assert entry.confirmation.status == ConfirmationStatus.TIMEOUT
            assert entry.category == OutcomeCategory.TIMED_OUT


# ============================================================================
# Test Remote Signer
# ============================================================================

class TestRemoteSigner:
    """Tests for the signing service client."""

    @pytest.fixture
    def intent(self, test_config):
        return TransactionBuilder(test_config).build(listing_request(1)).with_nonce(3)

    @pytest.mark.asyncio
    async def test_sign(self, test_config, intent):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/sign"
            payload = json.loads(request.content)
            assert payload["nonce"] == 3
            assert payload["function_name"] == "create-listing"
            assert payload["fee"] == 50_000
            return httpx.Response(200, json={"txid": TXID, "tx_hex": "0x0a0b"})

        signer = RemoteSigner(test_config, transport=httpx.MockTransport(handler))
        signed = await signer.sign(intent)
        await signer.close()

        assert signed.txid == TXID
        assert signed.raw == b"\x0a\x0b"
        assert signed.raw_hex == "0a0b"

    @pytest.mark.asyncio
    async def test_requires_nonce(self, test_config, intent):
        signer = RemoteSigner(test_config, transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        with pytest.raises(SignerError):
            await signer.sign(intent.with_nonce(None))
        await signer.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="key unavailable"),
        httpx.Response(200, json={"txid": TXID}),
        httpx.Response(200, json={"txid": TXID, "tx_hex": "zz"}),
    ])
    async def test_signer_failures(self, test_config, intent, response):
        signer = RemoteSigner(test_config, transport=httpx.MockTransport(lambda r: response))

        with pytest.raises(SignerError):
            await signer.sign(intent)
        await signer.close()

    def test_requires_url(self, test_config):
        config = test_config.model_copy(update={"signer_url": None})

        with pytest.raises(ValueError):
            RemoteSigner(config)
