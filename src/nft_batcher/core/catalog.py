"""
Operation catalog.

Enumerates the contract calls the batcher knows how to submit and the
argument shape of each one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class OperationKind(str, Enum):
    """Supported domain operations."""
    MINT = "mint"
    TRANSFER = "transfer"
    CREATE_LISTING = "create-listing"
    CANCEL_LISTING = "cancel-listing"
    PURCHASE_LISTING = "purchase-listing"
    FEATURE_LISTING = "feature-listing"
    SET_PLATFORM_FEE = "set-platform-fee"
    CREATE_OFFER = "create-offer"
    ACCEPT_OFFER = "accept-offer"
    CANCEL_OFFER = "cancel-offer"
    CREATE_AUCTION = "create-auction"
    PLACE_BID = "place-bid"
    REQUEST_VERIFICATION = "request-verification"
    VERIFY_COLLECTION = "verify-collection"
    SET_VERIFICATION_FEE = "set-verification-fee"
    CREATE_WHITELIST = "create-whitelist"
    CREATE_BUNDLE = "create-bundle"
    DEPLOY_CONTRACT = "deploy-contract"


class ArgType(str, Enum):
    """Argument value types (Clarity types on the wire)."""
    UINT = "uint"
    PRINCIPAL = "principal"
    STRING = "string-ascii"
    BOOL = "bool"


@dataclass(frozen=True)
class ArgSpec:
    """
    One argument of a catalog entry.

    Attributes:
        name: Argument name as used in requests and input files
        arg_type: Expected value type
        price: Amount that must be strictly positive
        target: Names the contract to call instead of being passed to it
    """
    name: str
    arg_type: ArgType
    price: bool = False
    target: bool = False


@dataclass(frozen=True)
class CatalogEntry:
    """
    Contract and function reached by one operation kind.

    An entry without a function name deploys a contract instead of
    calling one.
    """
    kind: OperationKind
    contract_name: Optional[str]
    function_name: Optional[str]
    args: Tuple[ArgSpec, ...]

    @property
    def deploys(self) -> bool:
        return self.function_name is None

    @property
    def arg_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.args)

    @property
    def target_arg(self) -> Optional[ArgSpec]:
        for spec in self.args:
            if spec.target:
                return spec
        return None

    def get_arg(self, name: str) -> Optional[ArgSpec]:
        for spec in self.args:
            if spec.name == name:
                return spec
        return None


# Contract names deployed by the marketplace
NFT_CONTRACT = "example-nft"
MARKETPLACE_CONTRACT = "nft-marketplace"
OFFERS_CONTRACT = "nft-offers"
AUCTION_CONTRACT = "nft-auction"
VERIFICATION_CONTRACT = "collection-verification"
WHITELIST_CONTRACT = "nft-whitelist"
BUNDLE_CONTRACT = "nft-bundle"
ESCROW_CONTRACT = "nft-escrow"
ROYALTY_CONTRACT = "nft-royalty"
NFT_TRAIT_CONTRACT = "sip-009-nft-trait"


def _uint(name: str, price: bool = False) -> ArgSpec:
    return ArgSpec(name, ArgType.UINT, price=price)


def _principal(name: str, target: bool = False) -> ArgSpec:
    return ArgSpec(name, ArgType.PRINCIPAL, target=target)


def _string(name: str) -> ArgSpec:
    return ArgSpec(name, ArgType.STRING)


_ENTRIES = (
    CatalogEntry(OperationKind.MINT, NFT_CONTRACT, "mint", (
        _principal("recipient"),
    )),
    # transfer is called on the NFT contract named by the request itself
    CatalogEntry(OperationKind.TRANSFER, None, "transfer", (
        _principal("nft_contract", target=True),
        _uint("token_id"),
        _principal("sender"),
        _principal("recipient"),
    )),
    CatalogEntry(OperationKind.CREATE_LISTING, MARKETPLACE_CONTRACT, "create-listing", (
        _principal("nft_contract"),
        _uint("token_id"),
        _uint("price", price=True),
    )),
    CatalogEntry(OperationKind.CANCEL_LISTING, MARKETPLACE_CONTRACT, "cancel-listing", (
        _uint("listing_id"),
    )),
    CatalogEntry(OperationKind.PURCHASE_LISTING, MARKETPLACE_CONTRACT, "purchase-listing", (
        _uint("listing_id"),
    )),
    CatalogEntry(OperationKind.FEATURE_LISTING, MARKETPLACE_CONTRACT, "feature-listing", (
        _uint("listing_id"),
    )),
    CatalogEntry(OperationKind.SET_PLATFORM_FEE, MARKETPLACE_CONTRACT, "set-platform-fee", (
        _uint("fee"),
    )),
    CatalogEntry(OperationKind.CREATE_OFFER, OFFERS_CONTRACT, "create-offer", (
        _principal("nft_contract"),
        _uint("token_id"),
        _uint("amount", price=True),
        _uint("duration"),
    )),
    CatalogEntry(OperationKind.ACCEPT_OFFER, OFFERS_CONTRACT, "accept-offer", (
        _uint("offer_id"),
    )),
    CatalogEntry(OperationKind.CANCEL_OFFER, OFFERS_CONTRACT, "cancel-offer", (
        _uint("offer_id"),
    )),
    CatalogEntry(OperationKind.CREATE_AUCTION, AUCTION_CONTRACT, "create-auction", (
        _principal("nft_contract"),
        _uint("token_id"),
        _uint("start_price", price=True),
        _uint("duration"),
    )),
    CatalogEntry(OperationKind.PLACE_BID, AUCTION_CONTRACT, "place-bid", (
        _uint("auction_id"),
        _uint("amount", price=True),
    )),
    CatalogEntry(OperationKind.REQUEST_VERIFICATION, VERIFICATION_CONTRACT, "request-verification", (
        _principal("collection"),
        _string("metadata_uri"),
    )),
    CatalogEntry(OperationKind.VERIFY_COLLECTION, VERIFICATION_CONTRACT, "verify-collection", (
        _principal("collection"),
        _string("verified_uri"),
    )),
    CatalogEntry(OperationKind.SET_VERIFICATION_FEE, VERIFICATION_CONTRACT, "set-verification-fee", (
        _uint("fee"),
    )),
    CatalogEntry(OperationKind.CREATE_WHITELIST, WHITELIST_CONTRACT, "create-whitelist", (
        _string("name"),
        _uint("duration"),
    )),
    CatalogEntry(OperationKind.CREATE_BUNDLE, BUNDLE_CONTRACT, "create-bundle", (
        _uint("price", price=True),
        _uint("nft_count"),
    )),
    # deploys <sender>.<contract_name> from a Clarity source file
    CatalogEntry(OperationKind.DEPLOY_CONTRACT, None, None, (
        _string("contract_name"),
        _string("source_path"),
    )),
)


class OperationCatalog:
    """
    Lookup table of supported operations.

    A custom catalog can be passed to the TransactionBuilder to add or
    restrict operations; the default one covers the marketplace contracts.
    """

    def __init__(self, entries: Tuple[CatalogEntry, ...] = _ENTRIES):
        self._entries: Dict[str, CatalogEntry] = {
            entry.kind.value: entry for entry in entries
        }

    def get(self, kind: str) -> Optional[CatalogEntry]:
        """
        Get the catalog entry for an operation kind.

        Args:
            kind: Operation kind (enum member or its string value)

        Returns:
            The entry, or None if the kind is not supported
        """
        key = kind.value if isinstance(kind, OperationKind) else str(kind)
        return self._entries.get(key)

    def __contains__(self, kind: str) -> bool:
        return self.get(kind) is not None

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def kinds(self) -> Tuple[str, ...]:
        return tuple(self._entries)


DEFAULT_CATALOG = OperationCatalog()
