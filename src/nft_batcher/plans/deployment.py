"""
Contract deployment plan.

Deploys the marketplace contracts from the sender account in dependency
order: the NFT trait first, then the contracts that implement or use it.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Union

from nft_batcher.core.catalog import (
    AUCTION_CONTRACT,
    ESCROW_CONTRACT,
    MARKETPLACE_CONTRACT,
    NFT_CONTRACT,
    NFT_TRAIT_CONTRACT,
    ROYALTY_CONTRACT,
    OperationKind,
)
from nft_batcher.core.request import OperationRequest

DEPLOYMENT_ORDER = (
    NFT_TRAIT_CONTRACT,
    NFT_CONTRACT,
    MARKETPLACE_CONTRACT,
    AUCTION_CONTRACT,
    ESCROW_CONTRACT,
    ROYALTY_CONTRACT,
)

SOURCE_SUFFIX = ".clar"


def build_deployment_plan(
    contracts_dir: Union[str, Path] = "contracts",
    contracts: Optional[Sequence[str]] = None,
) -> List[OperationRequest]:
    """
    Build the deployment plan.

    Args:
        contracts_dir: Directory holding ``<contract-name>.clar`` sources
        contracts: Contract names to deploy, in order (DEPLOYMENT_ORDER if not given)

    Returns:
        One deploy-contract request per contract
    """
    contracts_dir = Path(contracts_dir)
    return [
        OperationRequest.create(
            OperationKind.DEPLOY_CONTRACT,
            source=f"deploy:{name}",
            contract_name=name,
            source_path=str(contracts_dir / f"{name}{SOURCE_SUFFIX}"),
        )
        for name in (contracts or DEPLOYMENT_ORDER)
    ]
