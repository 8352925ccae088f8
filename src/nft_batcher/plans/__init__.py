"""
Batch inputs.

Loaders for CSV/JSON batch files, the contract deployment plan and the
scripted interaction plan.
"""

from nft_batcher.plans.deployment import DEPLOYMENT_ORDER, build_deployment_plan
from nft_batcher.plans.interaction import build_interaction_plan
from nft_batcher.plans.loader import InputError, load_csv, load_json, load_requests

__all__ = [
    "DEPLOYMENT_ORDER",
    "InputError",
    "build_deployment_plan",
    "build_interaction_plan",
    "load_csv",
    "load_json",
    "load_requests",
]
