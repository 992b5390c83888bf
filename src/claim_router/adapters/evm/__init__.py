from .adapter import EVMAdapter
from .constants import ClaimSettings, format_token_amount, amount_to_value, value_to_amount
from .transactions import (
    build_approve_transaction,
    build_router_claim_transaction,
    build_direct_claim_transaction,
    build_batch_claim_transaction,
)
from .verifies import (
    query_erc20_allowance,
    sum_transfers_to,
    verify_claim_transfers,
)
from .wallets import (
    Eip1193Wallet,
    FrameWallet,
    BrowserWallet,
    LocalAccountWallet,
    select_wallet_provider,
)

__all__ = [
    "EVMAdapter",
    "ClaimSettings",
    "format_token_amount",
    "amount_to_value",
    "value_to_amount",
    "build_approve_transaction",
    "build_router_claim_transaction",
    "build_direct_claim_transaction",
    "build_batch_claim_transaction",
    "query_erc20_allowance",
    "sum_transfers_to",
    "verify_claim_transfers",
    "Eip1193Wallet",
    "FrameWallet",
    "BrowserWallet",
    "LocalAccountWallet",
    "select_wallet_provider",
]
