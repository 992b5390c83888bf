from .bases import (
    CanonicalModel,
    ApiModel,
    TransactionStatus,
    AppStatus,
    ClaimPhase,
    FailureKind,
    BaseTransactionConfirmation,
)
from .https import (
    RewardAsset,
    TotalClaimable,
    Token,
    TokensResponse,
    AllowanceResponse,
    ClaimBalanceResponse,
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    ErrorResponse,
    ClankerToken,
    ClankerPage,
)
from .claims import ClaimRequest, LedgerEntry, ClaimOutcome

__all__ = [
    "CanonicalModel",
    "ApiModel",
    "TransactionStatus",
    "AppStatus",
    "ClaimPhase",
    "FailureKind",
    "BaseTransactionConfirmation",
    "RewardAsset",
    "TotalClaimable",
    "Token",
    "TokensResponse",
    "AllowanceResponse",
    "ClaimBalanceResponse",
    "CacheInvalidateRequest",
    "CacheInvalidateResponse",
    "ErrorResponse",
    "ClankerToken",
    "ClankerPage",
    "ClaimRequest",
    "LedgerEntry",
    "ClaimOutcome",
]
