"""Chain access layer: provider capability, token and pair clients."""

from tokenswap.chain.accounts import AccountEvent, AccountStream
from tokenswap.chain.pair import PairOracle, PoolStatus
from tokenswap.chain.provider import LocalSigner, Signer, TransactionHandle, WalletProvider
from tokenswap.chain.token import TokenClient

__all__ = [
    "AccountEvent",
    "AccountStream",
    "LocalSigner",
    "PairOracle",
    "PoolStatus",
    "Signer",
    "TokenClient",
    "TransactionHandle",
    "WalletProvider",
]
