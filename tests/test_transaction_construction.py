"""
Test suite for the operation catalog and transaction builder.

Tests that requests are validated locally and translated into contract
calls with the configured fee and post-condition mode.
"""

import pytest

from nft_batcher.config import PostConditionMode
from nft_batcher.core.catalog import DEFAULT_CATALOG, ArgType, OperationCatalog, OperationKind
from nft_batcher.core.request import OperationRequest
from nft_batcher.tx.builder import TransactionBuilder, ValidationError

from conftest import DEPLOYER, NFT_CONTRACT, RECIPIENT, SENDER, listing_request


# ============================================================================
# Test Catalog
# ============================================================================

class TestOperationCatalog:
    """Tests for the operation catalog."""

    def test_catalog_covers_all_kinds(self):
        """Test every operation kind has an entry."""
        assert len(DEFAULT_CATALOG) == len(OperationKind)
        for kind in OperationKind:
            assert kind in DEFAULT_CATALOG

    def test_lookup_by_string(self):
        """Test entries can be looked up by their string value."""
        entry = DEFAULT_CATALOG.get("create-listing")

        assert entry is DEFAULT_CATALOG.get(OperationKind.CREATE_LISTING)
        assert entry.contract_name == "nft-marketplace"
        assert entry.arg_names == ("nft_contract", "token_id", "price")
        assert entry.get_arg("price").price is True

    def test_unknown_kind(self):
        """Test unknown kinds are not in the catalog."""
        assert DEFAULT_CATALOG.get("burn") is None
        assert "burn" not in DEFAULT_CATALOG

    def test_transfer_targets_request_contract(self):
        """Test transfer takes its contract from the nft_contract argument."""
        entry = DEFAULT_CATALOG.get(OperationKind.TRANSFER)

        assert entry.contract_name is None
        assert entry.target_arg.name == "nft_contract"

    def test_custom_catalog(self):
        """Test a restricted catalog only knows its own entries."""
        catalog = OperationCatalog((DEFAULT_CATALOG.get(OperationKind.MINT),))

        assert catalog.kinds == ("mint",)


# ============================================================================
# Test Request Model
# ============================================================================

class TestOperationRequest:
    """Tests for the request model."""

    def test_create_preserves_argument_order(self):
        """Test keyword arguments keep their order."""
        request = OperationRequest.create(OperationKind.PLACE_BID, auction_id=4, amount=10)

        assert request.kind == "place-bid"
        assert request.args == (("auction_id", 4), ("amount", 10))

    def test_mapping_args_are_frozen(self):
        """Test a mapping passed as args is converted to pairs."""
        request = OperationRequest(kind="mint", args={"recipient": RECIPIENT})

        assert request.args == (("recipient", RECIPIENT),)
        assert request.get("recipient") == RECIPIENT
        assert hash(request)


# ============================================================================
# Test Builder
# ============================================================================

class TestTransactionBuilder:
    """Tests for building intents."""

    def test_build_listing(self, test_config):
        """Test a listing request becomes a marketplace call."""
        builder = TransactionBuilder(test_config)

        intent = builder.build(listing_request(7, price=2_500_000))

        assert intent.contract_id == f"{DEPLOYER}.nft-marketplace"
        assert intent.contract_address == DEPLOYER
        assert intent.contract_name == "nft-marketplace"
        assert intent.function_name == "create-listing"
        assert [(a.name, a.arg_type, a.value) for a in intent.args] == [
            ("nft_contract", ArgType.PRINCIPAL, NFT_CONTRACT),
            ("token_id", ArgType.UINT, 7),
            ("price", ArgType.UINT, 2_500_000),
        ]
        assert intent.fee == 50_000
        assert intent.post_condition_mode == PostConditionMode.ALLOW
        assert intent.nonce is None

    def test_with_nonce_returns_new_intent(self, test_config):
        """Test assigning a nonce does not modify the original intent."""
        intent = TransactionBuilder(test_config).build(listing_request(1))

        assigned = intent.with_nonce(42)

        assert assigned.nonce == 42
        assert intent.nonce is None
        assert assigned.to_dict()["nonce"] == 42

    def test_transfer_calls_nft_contract(self, test_config):
        """Test transfer is addressed to the NFT contract from the request."""
        request = OperationRequest.create(
            OperationKind.TRANSFER,
            nft_contract=f" {NFT_CONTRACT} ",
            token_id=3,
            sender=SENDER,
            recipient=RECIPIENT,
        )

        intent = TransactionBuilder(test_config).build(request)

        assert intent.contract_id == NFT_CONTRACT
        assert intent.function_name == "transfer"
        assert [a.name for a in intent.args] == ["token_id", "sender", "recipient"]

    def test_fee_from_config(self, test_config):
        """Test the fee comes from configuration."""
        config = test_config.model_copy(update={"tx_fee": 1234})

        intent = TransactionBuilder(config).build(listing_request(1))

        assert intent.fee == 1234

    def test_string_arguments(self, test_config):
        """Test string-ascii arguments are passed through."""
        request = OperationRequest.create(
            OperationKind.CREATE_WHITELIST, name="Premium Sale 1", duration=1440,
        )

        intent = TransactionBuilder(test_config).build(request)

        assert intent.args[0].arg_type == ArgType.STRING
        assert intent.args[0].value == "Premium Sale 1"


class TestBuilderValidation:
    """Tests for local validation."""

    @pytest.fixture
    def builder(self, test_config) -> TransactionBuilder:
        return TransactionBuilder(test_config)

    def test_unknown_kind(self, builder):
        with pytest.raises(ValidationError) as exc_info:
            builder.build(OperationRequest.create("burn", token_id=1))
        assert exc_info.value.field == "kind"

    def test_missing_argument(self, builder):
        request = OperationRequest.create(OperationKind.CREATE_LISTING, nft_contract=NFT_CONTRACT, token_id=1)

        with pytest.raises(ValidationError) as exc_info:
            builder.build(request)
        assert exc_info.value.field == "price"
        assert exc_info.value.reason == "missing argument"

    def test_unexpected_argument(self, builder):
        request = OperationRequest.create(OperationKind.CANCEL_LISTING, listing_id=1, force=True)

        with pytest.raises(ValidationError) as exc_info:
            builder.build(request)
        assert exc_info.value.field == "force"

    @pytest.mark.parametrize("price", [0, -5])
    def test_non_positive_price(self, builder, price):
        with pytest.raises(ValidationError) as exc_info:
            builder.build(listing_request(1, price=price))
        assert exc_info.value.field == "price"

    def test_zero_non_price_uint_allowed(self, builder):
        """Test zero is valid for ids and fees."""
        intent = builder.build(OperationRequest.create(OperationKind.SET_PLATFORM_FEE, fee=0))

        assert intent.args[0].value == 0

    @pytest.mark.parametrize("token_id", [True, "7", 1.5, None])
    def test_uint_type_checked(self, builder, token_id):
        request = OperationRequest.create(
            OperationKind.CREATE_LISTING, nft_contract=NFT_CONTRACT, token_id=token_id, price=1,
        )

        with pytest.raises(ValidationError) as exc_info:
            builder.build(request)
        assert exc_info.value.field == "token_id"

    def test_empty_principal(self, builder):
        with pytest.raises(ValidationError) as exc_info:
            builder.build(OperationRequest.create(OperationKind.MINT, recipient="  "))
        assert exc_info.value.field == "recipient"

    def test_target_contract_needs_name(self, builder):
        request = OperationRequest.create(
            OperationKind.TRANSFER,
            nft_contract=DEPLOYER,
            token_id=1,
            sender=SENDER,
            recipient=RECIPIENT,
        )

        with pytest.raises(ValidationError) as exc_info:
            builder.build(request)
        assert exc_info.value.field == "nft_contract"

    def test_missing_contract_address(self, test_config):
        config = test_config.model_copy(update={"contract_address": None})

        with pytest.raises(ValidationError) as exc_info:
            TransactionBuilder(config).build(listing_request(1))
        assert exc_info.value.field == "contract_address"


class TestDeployContract:
    """Tests for contract deployment intents."""

    @pytest.fixture
    def source(self, tmp_path):
        path = tmp_path / "nft-escrow.clar"
        path.write_text("(define-data-var escrow-count uint u0)\n")
        return path

    def deploy_request(self, name, path) -> OperationRequest:
        return OperationRequest.create(
            OperationKind.DEPLOY_CONTRACT, contract_name=name, source_path=str(path),
        )

    def test_deploy_intent(self, test_config, source):
        intent = TransactionBuilder(test_config).build(self.deploy_request("nft-escrow", source))

        assert intent.is_deploy
        assert intent.contract_id == f"{SENDER}.nft-escrow"
        assert intent.function_name is None
        assert intent.code_body == source.read_text()
        assert intent.clarity_version == 2
        assert intent.fee == test_config.tx_fee

    def test_deploy_payload(self, test_config, source):
        payload = TransactionBuilder(test_config).build(self.deploy_request("nft-escrow", source)).with_nonce(4).to_dict()

        assert payload["tx_type"] == "smart_contract"
        assert payload["contract_address"] == SENDER
        assert payload["contract_name"] == "nft-escrow"
        assert payload["nonce"] == 4
        assert "function_name" not in payload

    def test_contract_call_payload(self, test_config):
        payload = TransactionBuilder(test_config).build(listing_request(1)).to_dict()

        assert payload["tx_type"] == "contract_call"
        assert "code_body" not in payload

    @pytest.mark.parametrize("name", ["1-nft", "nft escrow", "", "x" * 41])
    def test_invalid_contract_name(self, test_config, source, name):
        with pytest.raises(ValidationError) as exc_info:
            TransactionBuilder(test_config).build(self.deploy_request(name, source))
        assert exc_info.value.field == "contract_name"

    def test_missing_source(self, test_config, tmp_path):
        with pytest.raises(ValidationError) as exc_info:
            TransactionBuilder(test_config).build(self.deploy_request("nft-escrow", tmp_path / "missing.clar"))
        assert exc_info.value.field == "source_path"

    def test_empty_source(self, test_config, tmp_path):
        empty = tmp_path / "empty.clar"
        empty.write_text("  \n")

        with pytest.raises(ValidationError) as exc_info:
            TransactionBuilder(test_config).build(self.deploy_request("nft-escrow", empty))
        assert exc_info.value.field == "source_path"

    def test_needs_sender(self, test_config, source):
        config = test_config.model_copy(update={"sender_address": None})

        with pytest.raises(ValidationError) as exc_info:
            TransactionBuilder(config).build(self.deploy_request("nft-escrow", source))
        assert exc_info.value.field == "sender_address"
