"""
Base Schema Models for the Claim Router

Shared pydantic bases and the enumerations used across the claim path.

Core Classes:
    - CanonicalModel: byte-stable JSON serialization (cached read payloads)
    - ApiModel: camelCase payloads for the UI collaborator
    - TransactionStatus: receipt outcome
    - AppStatus: wallet/session lifecycle
    - ClaimPhase / FailureKind: claim orchestration state and failure reasons
    - BaseTransactionConfirmation: chain-agnostic receipt summary

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any, List
from abc import ABC
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CanonicalModel(BaseModel):
    """
    Pydantic base model whose JSON form is a pure function of its values.

    Keys are sorted and separators carry no whitespace, so two equal models
    always serialize to the same bytes. The read API relies on this when it
    serves a cached payload.

    Example:
        class Balance(CanonicalModel):
            symbol: str
            amount: int

        Balance(symbol="WETH", amount=1).to_canonical_json()  # '{"amount":1,"symbol":"WETH"}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


class ApiModel(CanonicalModel):
    """
    Base class for payloads exchanged with the UI collaborator.

    Fields are declared in snake_case and serialized in camelCase
    (``formatted_amount`` <-> ``formattedAmount``). Both spellings are
    accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dictionary using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionStatus(str, Enum):
    """Outcome of a mined transaction."""
    SUCCESS = "success"
    FAILED = "failed"


class AppStatus(str, Enum):
    """Lifecycle of the wallet/session context."""
    BOOTING = "booting"
    CONNECTING = "connecting"
    READY = "ready"
    NOT_IN_FRAME = "not_in_frame"
    ERROR = "error"


class ClaimPhase(str, Enum):
    """Phases of one claim orchestration, in execution order."""
    IDLE = "idle"
    CHECKING_ALLOWANCES = "checking_allowances"
    APPROVING = "approving"
    SUBMITTING_CLAIM = "submitting_claim"
    CONFIRMING_CLAIM = "confirming_claim"
    SETTLING_BALANCE = "settling_balance"
    DONE = "done"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a claim orchestration ended in the failed phase."""
    USER_REJECTED = "user_rejected"
    ON_CHAIN_REVERT = "on_chain_revert"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    VERIFICATION_FAILED = "verification_failed"
    UPSTREAM_READ = "upstream_read"
    NOTHING_TO_CLAIM = "nothing_to_claim"
    WALLET_UNAVAILABLE = "wallet_unavailable"
    UNKNOWN = "unknown"


class BaseTransactionConfirmation(CanonicalModel, ABC):
    """
    Receipt summary shared by every chain family.

    Attributes:
        confirmation_type: Chain family of the receipt (e.g. "evm")
        status: Whether the transaction succeeded
        confirmations: Blocks observed on top of the receipt (0 or 1 here)
        error_message: Revert reason when the transaction failed
        logs: Normalized event logs
    """

    confirmation_type: str = Field(..., description="Chain family of the receipt")
    status: TransactionStatus
    confirmations: int = Field(default=0, ge=0)
    error_message: Optional[str] = None
    logs: Optional[List[Dict[str, Any]]] = None

    def is_success(self) -> bool:
        return self.status == TransactionStatus.SUCCESS
