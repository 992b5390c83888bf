"""
Claim request, ledger and outcome models.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from .bases import ApiModel, ClaimPhase, FailureKind
from .https import RewardAsset, TotalClaimable


class ClaimRequest(ApiModel):
    """Arguments of one router claim.

    Attributes:
        distributor: Upstream fee distributor the router forwards to.
        reward_tokens: Ordered reward-token addresses; never empty.
    """
    distributor: str
    reward_tokens: List[str]

    @field_validator("reward_tokens")
    @classmethod
    def _non_empty(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("reward_tokens must not be empty")
        return value


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LedgerEntry(ApiModel):
    """One confirmed claim in the local transaction history."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: Literal["batch", "single"]
    rewards: List[RewardAsset] = Field(default_factory=list)
    tokens_claimed: List[str] = Field(default_factory=list)
    pool_addresses: List[str] = Field(default_factory=list)
    timestamp: str = Field(default_factory=_utc_now_iso)
    tx_hash: str

    @classmethod
    def from_claim(cls, claimed: TotalClaimable, tx_hash: str) -> "LedgerEntry":
        """Build an entry from the rewards resolved right before submission."""
        return cls(
            type="batch" if len(claimed.rewards) > 1 else "single",
            rewards=list(claimed.rewards),
            tokens_claimed=[reward.symbol for reward in claimed.rewards],
            pool_addresses=list(claimed.token_addresses),
            tx_hash=tx_hash,
        )


class ClaimOutcome(ApiModel):
    """Result of one ``ClaimOrchestrator.claim_all`` invocation.

    ``skipped`` means another flow held the session lock and nothing ran.
    """
    status: Literal["done", "failed", "skipped"]
    phase: ClaimPhase = ClaimPhase.IDLE
    tx_hash: Optional[str] = None
    rewards: List[RewardAsset] = Field(default_factory=list)
    entry: Optional[LedgerEntry] = None
    failure_kind: Optional[FailureKind] = None
    message: Optional[str] = None
    latest: Optional[TotalClaimable] = None

    def is_success(self) -> bool:
        return self.status == "done"
