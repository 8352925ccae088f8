"""
Transaction construction and signing.
"""

from nft_batcher.tx.builder import TransactionBuilder, ValidationError
from nft_batcher.tx.signer import RemoteSigner, SignedTransaction, SignerError, TransactionSigner

__all__ = [
    "TransactionBuilder",
    "ValidationError",
    "RemoteSigner",
    "SignedTransaction",
    "SignerError",
    "TransactionSigner",
]
