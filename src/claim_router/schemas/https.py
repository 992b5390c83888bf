"""
HTTP Request/Response Schema Models for the Claim Read API

This module defines the Pydantic models exchanged between the read API and
its UI collaborator, plus the upstream token-discovery payloads.

The read flow consists of:
1. Client asks for a wallet's deployed tokens and claimable rewards
2. Client checks router allowances for the rewards it is about to claim
3. Client invalidates the cached payload after a claim

Payload models serialize camelCase keys (see ApiModel).
"""

from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field

from .bases import ApiModel


# ============================================================================
# Claimable rewards
# ============================================================================

class RewardAsset(ApiModel):
    """One claimable reward asset for a fee owner.

    Attributes:
        address: Token contract address.
        symbol: Token symbol.
        decimals: Token decimals.
        amount: Raw amount in base units, as a decimal string.
        formatted_amount: Display string (see ``format_token_amount``).
    """
    address: str
    symbol: str
    decimals: int = Field(..., ge=0)
    amount: str = Field(..., description="Raw amount in base units")
    formatted_amount: str

    @property
    def raw_amount(self) -> int:
        return int(self.amount)


class TotalClaimable(ApiModel):
    """Resolved claimable set.

    ``token_addresses`` is exactly the addresses backing ``rewards``.
    """
    rewards: List[RewardAsset] = Field(default_factory=list)
    token_addresses: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.token_addresses


class Token(ApiModel):
    """Token deployed by the wallet, as shown to the user."""
    id: str
    name: str
    symbol: str
    contract_address: str
    created_at: str
    icon_color: str
    image_url: Optional[str] = None
    market_cap: Optional[float] = None
    price: Optional[float] = None
    is_trusted: Optional[bool] = None


class TokensResponse(ApiModel):
    """Payload of ``GET /api/tokens``."""
    tokens: List[Token] = Field(default_factory=list)
    total_claimable: TotalClaimable = Field(default_factory=TotalClaimable)

    @classmethod
    def empty(cls) -> "TokensResponse":
        return cls(tokens=[], total_claimable=TotalClaimable())


# ============================================================================
# Allowance / balances / cache
# ============================================================================

class AllowanceResponse(ApiModel):
    """Router allowance for one token.

    Attributes:
        allowance: Current allowance in base units, as a decimal string.
        needs_approval: Whether an approval must precede the claim.
    """
    allowance: str
    needs_approval: bool


class ClaimBalanceResponse(ApiModel):
    """Balance of the CLAIM token for a wallet."""
    balance: str
    formatted_balance: str
    decimals: int
    symbol: str


class CacheInvalidateRequest(ApiModel):
    """Body of ``POST /api/cache/invalidate``."""
    wallet_address: str


class CacheInvalidateResponse(ApiModel):
    success: bool = True


class ErrorResponse(ApiModel):
    error: str


# ============================================================================
# Upstream discovery payloads
# ============================================================================

class ClankerMarket(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    market_cap: Optional[float] = Field(default=None, alias="marketCap")
    price: Optional[float] = None


class ClankerRelated(BaseModel):
    model_config = ConfigDict(extra="ignore")

    market: Optional[ClankerMarket] = None


class ClankerTrustStatus(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    is_trusted_deployer: bool = Field(default=False, alias="isTrustedDeployer")
    is_trusted_clanker: bool = Field(default=False, alias="isTrustedClanker")
    fid_matches_deployer: bool = Field(default=False, alias="fidMatchesDeployer")


class ClankerToken(BaseModel):
    """One token record from the discovery service."""
    model_config = ConfigDict(extra="ignore")

    contract_address: str
    name: str
    symbol: str
    img_url: Optional[str] = None
    chain_id: Optional[int] = None
    deployed_at: Optional[str] = None
    created_at: Optional[str] = None
    msg_sender: Optional[str] = None
    related: Optional[ClankerRelated] = None
    trust_status: Optional[ClankerTrustStatus] = Field(default=None, alias="trustStatus")


class ClankerPage(BaseModel):
    """One page of the discovery service's creator search."""
    model_config = ConfigDict(extra="ignore")

    tokens: List[ClankerToken] = Field(default_factory=list)
    total: Optional[int] = None
    has_more: Optional[bool] = Field(default=None, alias="hasMore")
