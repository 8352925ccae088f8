"""
Scripted marketplace interaction plan.

Exercises every deployed contract with a fixed sequence of calls: mints,
listings, featured listings, offers, auctions, collection verification,
whitelists, bundles and platform configuration.
"""

from typing import List, Optional

from nft_batcher.core.catalog import (
    AUCTION_CONTRACT,
    MARKETPLACE_CONTRACT,
    NFT_CONTRACT,
    OperationKind,
)
from nft_batcher.core.request import OperationRequest

MINT_COUNT = 10
LISTING_COUNT = 10
FEATURE_COUNT = 5
OFFER_COUNT = 10
AUCTION_COUNT = 5
WHITELIST_COUNT = 2
BUNDLE_COUNT = 2

OFFER_DURATION_BLOCKS = 144         # ~1 day
AUCTION_DURATION_BLOCKS = 288       # ~2 days
WHITELIST_DURATION_BLOCKS = 1440    # ~10 days
BUNDLE_SIZE = 3

PLATFORM_FEE_BPS = 300              # 3%
VERIFICATION_FEE = 2_000_000        # 2 STX


def build_interaction_plan(
    deployer: str,
    nft_contract: Optional[str] = None,
) -> List[OperationRequest]:
    """
    Build the scripted interaction plan.

    Args:
        deployer: Address the contracts are deployed at (also the mint recipient)
        nft_contract: NFT contract used by listings, offers and auctions
            (defaults to the deployer's example NFT)

    Returns:
        Ordered requests for the whole plan
    """
    nft_contract = nft_contract or f"{deployer}.{NFT_CONTRACT}"
    plan: List[OperationRequest] = []

    for i in range(1, MINT_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.MINT,
            source=f"interact:mint-{i}",
            recipient=deployer,
        ))

    for i in range(1, LISTING_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.CREATE_LISTING,
            source=f"interact:listing-{i}",
            nft_contract=nft_contract,
            token_id=i,
            price=1_000_000 + i * 100_000,
        ))

    for i in range(1, FEATURE_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.FEATURE_LISTING,
            source=f"interact:feature-{i}",
            listing_id=i,
        ))

    for i in range(1, OFFER_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.CREATE_OFFER,
            source=f"interact:offer-{i}",
            nft_contract=nft_contract,
            token_id=i,
            amount=800_000 + i * 50_000,
            duration=OFFER_DURATION_BLOCKS,
        ))

    # Auctions use the tokens minted after the listed ones
    for i in range(1, AUCTION_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.CREATE_AUCTION,
            source=f"interact:auction-{i}",
            nft_contract=nft_contract,
            token_id=LISTING_COUNT + i,
            start_price=500_000 + i * 100_000,
            duration=AUCTION_DURATION_BLOCKS,
        ))

    collections = [
        nft_contract,
        f"{deployer}.{MARKETPLACE_CONTRACT}",
        f"{deployer}.{AUCTION_CONTRACT}",
    ]
    for i, collection in enumerate(collections):
        plan.append(OperationRequest.create(
            OperationKind.REQUEST_VERIFICATION,
            source=f"interact:verification-request-{i + 1}",
            collection=collection,
            metadata_uri=f"https://metadata.example.com/collection-{i}",
        ))
    for i, collection in enumerate(collections):
        plan.append(OperationRequest.create(
            OperationKind.VERIFY_COLLECTION,
            source=f"interact:verify-{i + 1}",
            collection=collection,
            verified_uri=f"https://verified.example.com/collection-{i}",
        ))

    for i in range(1, WHITELIST_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.CREATE_WHITELIST,
            source=f"interact:whitelist-{i}",
            name=f"Premium Sale {i}",
            duration=WHITELIST_DURATION_BLOCKS,
        ))

    for i in range(1, BUNDLE_COUNT + 1):
        plan.append(OperationRequest.create(
            OperationKind.CREATE_BUNDLE,
            source=f"interact:bundle-{i}",
            price=5_000_000 + i * 1_000_000,
            nft_count=BUNDLE_SIZE,
        ))

    plan.append(OperationRequest.create(
        OperationKind.SET_PLATFORM_FEE,
        source="interact:platform-fee",
        fee=PLATFORM_FEE_BPS,
    ))
    plan.append(OperationRequest.create(
        OperationKind.SET_VERIFICATION_FEE,
        source="interact:verification-fee",
        fee=VERIFICATION_FEE,
    ))

    return plan
