"""
State persistence for reports and checkpoints.
"""

from nft_batcher.state.database import Checkpoint, Database, init_database

__all__ = [
    "Checkpoint",
    "Database",
    "init_database",
]
