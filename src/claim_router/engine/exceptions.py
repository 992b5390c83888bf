"""
Exception and Error Definitions Module

Defines the exception hierarchy for fee claiming: named contract reverts raised
by the router and its collaborators, wallet and confirmation failures raised on
the client side, and read-path failures. All exceptions inherit from
ClaimRouterError for unified exception handling.

Exception Hierarchy:
    ClaimRouterError (root)
    ├── ContractRevert
    │   ├── EmptyRewardTokens
    │   ├── CallerNotEOA
    │   ├── DistributorNotAllowed
    │   ├── DistributorNotContract
    │   ├── DistributorCallFailed
    │   ├── NothingToClaim
    │   ├── InsufficientRebateBalance
    │   ├── TaxExceedsCap
    │   ├── NotOwner
    │   ├── ContractPaused
    │   ├── ReentrantCall
    │   ├── ZeroAddress
    │   ├── InsufficientAllowance
    │   ├── InsufficientBalance
    │   └── UnknownFunction
    ├── WalletError
    │   ├── UserRejectedError
    │   └── WalletUnavailableError
    ├── TransactionError
    │   ├── ConfirmationTimeoutError
    │   ├── TransactionRevertedError
    │   └── ClaimVerificationError
    ├── UpstreamReadError
    ├── ConfigurationError
    └── InvalidTransition
"""


class ClaimRouterError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions should inherit from this class to enable
    unified exception handling and centralized error processing.
    """
    pass


# ==================== Contract Reverts ====================

class ContractRevert(ClaimRouterError):
    """
    Base class for reverts raised by contract models.

    A revert escaping a top-level call rolls back every state change made
    during that call. The exception message doubles as the revert reason
    recorded on failed receipts.
    """

    reason = "execution reverted"

    def __init__(self, message=None):
        super().__init__(message or self.reason)


class EmptyRewardTokens(ContractRevert):
    """Raised when a claim is submitted with no reward tokens."""
    reason = "reward token list is empty"


class CallerNotEOA(ContractRevert):
    """
    Raised when the router is invoked by a contract instead of directly
    by an externally owned account (sender differs from origin).
    """
    reason = "caller must be an externally owned account"


class DistributorNotAllowed(ContractRevert):
    """Raised when the target distributor is not on the router allowlist."""
    reason = "distributor not allowed"


class DistributorNotContract(ContractRevert):
    """Raised when the target distributor has no deployed code."""
    reason = "distributor has no code"


class DistributorCallFailed(ContractRevert):
    """
    Raised when the raw call into the distributor's claim entry point fails.

    A single failing token aborts the whole claim.
    """
    reason = "distributor claim call failed"


class NothingToClaim(ContractRevert):
    """Raised by the fee distributor when an owner has no fees for a token."""
    reason = "nothing to claim"


class InsufficientRebateBalance(ContractRevert):
    """
    Raised when the owner withdraws more rebate than the router holds.

    Attributes:
        available: Router balance of the token
        requested: Amount requested for withdrawal
    """

    reason = "insufficient rebate balance"

    def __init__(self, available: int = 0, requested: int = 0):
        self.available = available
        self.requested = requested
        super().__init__(f"{self.reason}: available={available}, requested={requested}")


class TaxExceedsCap(ContractRevert):
    """Raised when a tax rate above the hard cap is requested."""
    reason = "tax exceeds cap"


class NotOwner(ContractRevert):
    """Raised when an owner-gated function is called by anyone else."""
    reason = "caller is not the owner"


class ContractPaused(ContractRevert):
    """Raised when the claim entry point is used while the router is paused."""
    reason = "contract is paused"


class ReentrantCall(ContractRevert):
    """Raised when a guarded entry point is re-entered."""
    reason = "reentrant call"


class ZeroAddress(ContractRevert):
    """Raised when the zero address is supplied where a real one is required."""
    reason = "zero address"


class InsufficientAllowance(ContractRevert):
    """Raised by token models when transferFrom exceeds the approved amount."""
    reason = "ERC20: insufficient allowance"


class InsufficientBalance(ContractRevert):
    """Raised by token models when a transfer exceeds the sender's balance."""
    reason = "ERC20: transfer amount exceeds balance"


class UnknownFunction(ContractRevert):
    """Raised when calldata does not match any known function selector."""
    reason = "function selector not recognized"


# ==================== Wallet Errors ====================

class WalletError(ClaimRouterError):
    """
    Base exception for wallet signer failures.
    """
    pass


class UserRejectedError(WalletError):
    """
    Raised when the user declines a request in their wallet.

    This includes scenarios such as:
    - Rejected transaction signature
    - Denied account access
    - Cancelled chain switch
    """

    def __init__(self, message: str = "Transaction rejected by user"):
        super().__init__(message)


class WalletUnavailableError(WalletError):
    """
    Raised when no wallet provider is available or it stops responding.
    """
    pass


# ==================== Transaction Errors ====================

class TransactionError(ClaimRouterError):
    """
    Base exception for submitted transactions that did not produce the
    expected outcome.

    Attributes:
        tx_hash: Transaction hash if available
    """

    def __init__(self, message: str, tx_hash: str = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class ConfirmationTimeoutError(TransactionError):
    """
    Raised when a receipt is not observed within the confirmation bound.

    The transaction may still be mined later; callers treat it as a failure
    requiring a manual retry.
    """
    pass


class TransactionRevertedError(TransactionError):
    """
    Raised when a receipt reports failure status.
    """
    pass


class ClaimVerificationError(TransactionError):
    """
    Raised when a successful receipt carries no qualifying transfer to the
    claiming wallet.
    """
    pass


# ==================== Read Path / Configuration ====================

class UpstreamReadError(ClaimRouterError):
    """
    Raised when a distributor read, batched read, or discovery request fails
    and the caller cannot degrade to an empty result.
    """
    pass


class ConfigurationError(ClaimRouterError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Missing RPC URL or private key
    - Invalid contract addresses
    - Tax rate outside the accepted range at deployment
    """
    pass


class InvalidTransition(ClaimRouterError):
    """
    Raised when the claim state machine is asked to move between phases
    that are not connected.

    Attributes:
        current: Phase the flow was in
        requested: Phase that was requested
    """

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid claim phase transition: {current} -> {requested}")
