"""
Built-in event handlers for the claim workflow.

Implements the claim flow: allowance check → approvals → claim submission →
confirmation and transfer verification → balance settling → ledger record.
Every handler turns a project exception into a ``ClaimFailedEvent`` so the
chain always ends in a result event.
"""

import asyncio
import logging
from typing import List, Optional

from ..adapters.evm.constants import MAX_UINT256
from ..adapters.evm.transactions import build_approve_transaction, build_batch_claim_transaction, build_router_claim_transaction
from ..adapters.evm.verifies import verify_claim_transfers
from ..engine.events import (
    EventBus,
    Dependencies,
    ClaimContext,
    ClaimRequestedEvent,
    ApprovalRequiredEvent,
    ClaimSubmitEvent,
    ClaimSubmittedEvent,
    ClaimConfirmedEvent,
    BalanceSettledEvent,
    ClaimCompletedEvent,
    ClaimFailedEvent,
)
from ..engine.exceptions import (
    ClaimRouterError,
    ClaimVerificationError,
    ConfirmationTimeoutError,
    ContractRevert,
    TransactionError,
    TransactionRevertedError,
    UpstreamReadError,
    UserRejectedError,
    WalletUnavailableError,
)
from ..schemas.bases import FailureKind
from ..schemas.claims import ClaimRequest, LedgerEntry

logger = logging.getLogger(__name__)


# ==================== Failure classification ====================

def classify_failure(error: BaseException) -> FailureKind:
    if isinstance(error, UserRejectedError):
        return FailureKind.USER_REJECTED
    if isinstance(error, WalletUnavailableError):
        return FailureKind.WALLET_UNAVAILABLE
    if isinstance(error, ConfirmationTimeoutError):
        return FailureKind.CONFIRMATION_TIMEOUT
    if isinstance(error, ClaimVerificationError):
        return FailureKind.VERIFICATION_FAILED
    if isinstance(error, (TransactionRevertedError, ContractRevert)):
        return FailureKind.ON_CHAIN_REVERT
    if isinstance(error, UpstreamReadError):
        return FailureKind.UPSTREAM_READ
    return FailureKind.UNKNOWN


def failed(context: ClaimContext, error: BaseException, tx_hash: Optional[str] = None) -> ClaimFailedEvent:
    if tx_hash is None and isinstance(error, TransactionError):
        tx_hash = error.tx_hash
    kind = classify_failure(error)
    logger.info("Claim for %s failed (%s): %s", context.wallet, kind.value, error)
    return ClaimFailedEvent(context=context, kind=kind, message=str(error) or kind.value, tx_hash=tx_hash)


def verification_tokens(context: ClaimContext, settlement_token: str) -> List[str]:
    """Tokens whose Transfer logs prove the claim paid out."""
    claimed = context.claimable.token_addresses
    if any(token.lower() == settlement_token.lower() for token in claimed):
        return [settlement_token]
    return list(claimed)


def is_settlement_only(context: ClaimContext, settlement_token: str) -> bool:
    claimed = context.claimable.token_addresses
    return len(claimed) == 1 and claimed[0].lower() == settlement_token.lower()


# ==================== Event Handlers ====================

async def handle_claim_requested(
    event: ClaimRequestedEvent,
    deps: Dependencies
) -> ApprovalRequiredEvent | ClaimSubmitEvent | ClaimFailedEvent:
    """Run the allowance gate for every claimable reward."""
    context = event.context
    settings = deps.settings
    if context.claimable.is_empty():
        return ClaimFailedEvent(context=context, kind=FailureKind.NOTHING_TO_CLAIM, message="Nothing to claim")

    if settings.direct_settlement_claim and is_settlement_only(context, settings.settlement_token):
        return ClaimSubmitEvent(context=context, direct=True)

    pending = []
    for reward in context.claimable.rewards:
        status = await deps.chain.check_allowance(
            context.wallet, settings.router_address, reward.address, reward.raw_amount
        )
        logger.debug("Allowance of %s for router: %s", reward.symbol, status.allowance)
        if status.needs_approval:
            pending.append(reward)

    if pending:
        return ApprovalRequiredEvent(context=context, pending=pending)
    return ClaimSubmitEvent(context=context)


async def handle_approval_required(
    event: ApprovalRequiredEvent,
    deps: Dependencies
) -> ApprovalRequiredEvent | ClaimSubmitEvent | ClaimFailedEvent:
    """Approve the router for the next pending token and wait for it to be mined."""
    context = event.context
    settings = deps.settings
    reward = event.pending[0]
    amount = MAX_UINT256 if settings.approval_policy == "max" else reward.raw_amount

    tx = build_approve_transaction(reward.address, settings.router_address, amount)
    try:
        tx_hash = await deps.wallet.send_transaction(tx)
        confirmation = await deps.chain.wait_for_receipt(tx_hash, settings.confirmation_timeout)
        if not confirmation.is_success():
            raise TransactionRevertedError(f"Approval for {reward.symbol} failed on-chain", tx_hash=tx_hash)
    except ClaimRouterError as e:
        return failed(context, e)

    logger.info("Approved %s for router in %s", reward.symbol, tx_hash)
    remaining = event.pending[1:]
    if remaining:
        return ApprovalRequiredEvent(context=context, pending=remaining)
    return ClaimSubmitEvent(context=context)


async def handle_claim_submit(
    event: ClaimSubmitEvent,
    deps: Dependencies
) -> ClaimSubmittedEvent | ClaimFailedEvent:
    """Build and send the claim transaction."""
    context = event.context
    settings = deps.settings
    if event.direct:
        tx = build_batch_claim_transaction(
            settings.multicall_address,
            settings.distributor_address,
            context.wallet,
            context.claimable.token_addresses,
            settings.settlement_token,
        )
    else:
        request = ClaimRequest(
            distributor=settings.distributor_address,
            reward_tokens=list(context.claimable.token_addresses),
        )
        tx = build_router_claim_transaction(settings.router_address, request)

    try:
        tx_hash = await deps.wallet.send_transaction(tx)
    except ClaimRouterError as e:
        return failed(context, e)

    logger.info("Submitted %s for %d tokens: %s", tx.description, len(context.claimable.token_addresses), tx_hash)
    return ClaimSubmittedEvent(context=context, tx_hash=tx_hash)


async def handle_claim_submitted(
    event: ClaimSubmittedEvent,
    deps: Dependencies
) -> ClaimConfirmedEvent | ClaimFailedEvent:
    """Wait for the claim receipt and verify the wallet was paid."""
    context = event.context
    settings = deps.settings
    try:
        confirmation = await deps.chain.wait_for_receipt(event.tx_hash, settings.confirmation_timeout)
        if not confirmation.is_success():
            raise TransactionRevertedError(
                f"Claim transaction failed on-chain: {confirmation.error_message or 'reverted'}",
                tx_hash=event.tx_hash,
            )
        transferred = verify_claim_transfers(
            confirmation,
            verification_tokens(context, settings.settlement_token),
            context.wallet,
        )
    except ClaimRouterError as e:
        return failed(context, e, tx_hash=event.tx_hash)

    return ClaimConfirmedEvent(context=context, tx_hash=event.tx_hash, transferred=transferred)


async def handle_claim_confirmed(
    event: ClaimConfirmedEvent,
    deps: Dependencies
) -> BalanceSettledEvent:
    """Poll the read API, bypassing its cache, until the claimable set reads empty."""
    context = event.context
    settings = deps.settings
    latest = context.claimable
    settled = False

    if deps.read_api is not None:
        for attempt in range(1, settings.settle_attempts + 1):
            if attempt > 1:
                await asyncio.sleep(settings.settle_interval)
            try:
                response = await deps.read_api.resolve_claimable(context.wallet, force_refresh=True)
            except ClaimRouterError as e:
                logger.warning("Balance refresh %d/%d failed: %s", attempt, settings.settle_attempts, e)
                continue
            latest = response.total_claimable
            if latest.is_empty():
                settled = True
                break
            logger.debug("Balance refresh %d/%d: %d tokens still claimable",
                         attempt, settings.settle_attempts, len(latest.token_addresses))

    if not settled:
        logger.warning("Claimable balance for %s did not settle to zero", context.wallet)
    return BalanceSettledEvent(context=context, tx_hash=event.tx_hash, latest=latest, settled=settled)


async def handle_balance_settled(
    event: BalanceSettledEvent,
    deps: Dependencies
) -> ClaimCompletedEvent:
    """Record the pre-claim rewards and the claim hash in the ledger."""
    entry = LedgerEntry.from_claim(event.context.claimable, event.tx_hash)
    if deps.ledger is not None:
        deps.ledger.append(entry)
    return ClaimCompletedEvent(context=event.context, tx_hash=event.tx_hash, entry=entry, latest=event.latest)


# ==================== Event Bus Setup ====================

def setup_event_bus() -> EventBus:
    """Initialize event bus with the claim handlers."""
    event_bus = EventBus()
    event_bus.subscribe(ClaimRequestedEvent, handle_claim_requested)
    event_bus.subscribe(ApprovalRequiredEvent, handle_approval_required)
    event_bus.subscribe(ClaimSubmitEvent, handle_claim_submit)
    event_bus.subscribe(ClaimSubmittedEvent, handle_claim_submitted)
    event_bus.subscribe(ClaimConfirmedEvent, handle_claim_confirmed)
    event_bus.subscribe(BalanceSettledEvent, handle_balance_settled)
    return event_bus
