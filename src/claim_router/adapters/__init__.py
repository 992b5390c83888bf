from .bases import WalletSigner, ChainReader, ClaimReadApi, needs_approval
from .evm import (
    EVMAdapter,
    ClaimSettings,
    FrameWallet,
    BrowserWallet,
    LocalAccountWallet,
    select_wallet_provider,
)

__all__ = [
    "WalletSigner",
    "ChainReader",
    "ClaimReadApi",
    "needs_approval",
    "EVMAdapter",
    "ClaimSettings",
    "FrameWallet",
    "BrowserWallet",
    "LocalAccountWallet",
    "select_wallet_provider",
]
