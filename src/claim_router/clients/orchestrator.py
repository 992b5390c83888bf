"""
Claim orchestration.

``ClaimOrchestrator.claim_all`` runs one claim as an event chain (see
``clients.flows``) and tracks its phase in a ``ClaimFlowState``. A
session-scoped ``FlowGuard`` keeps claims and manual refreshes from
overlapping: a request arriving while another flow holds the guard is
dropped, not queued.

Usage:
    orchestrator = ClaimOrchestrator(wallet, EVMAdapter(settings), read_api, ledger, settings)

    @orchestrator.hook(ApprovalRequiredEvent)
    async def show_status(event, deps):
        print(status_text(event))

    outcome = await orchestrator.claim_all(address)
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from .flows import classify_failure, setup_event_bus
from .ledger import TransactionLedger
from ..adapters.bases import ChainReader, ClaimReadApi, WalletSigner
from ..adapters.evm.constants import ClaimSettings
from ..engine.events import (
    BaseEvent,
    Dependencies,
    EventBus,
    EventHookFunc,
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
from ..engine.exceptions import ClaimRouterError, ConfigurationError, InvalidTransition
from ..engine.executors import EventChain
from ..schemas.bases import ClaimPhase, FailureKind
from ..schemas.claims import ClaimOutcome
from ..schemas.https import TokensResponse, TotalClaimable

logger = logging.getLogger(__name__)


# ==================== Session flow lock ====================

class FlowKind(str, Enum):
    """What the session is currently doing."""
    IDLE = "idle"
    CLAIMING = "claiming"
    REFRESHING = "refreshing"


class FlowGuard:
    """
    Compare-and-set lock over the session flow state.

    ``try_acquire`` checks and sets without awaiting in between, so it is
    atomic with respect to the event loop.
    """

    def __init__(self) -> None:
        self._state = FlowKind.IDLE

    @property
    def state(self) -> FlowKind:
        return self._state

    def try_acquire(self, kind: FlowKind) -> bool:
        if kind == FlowKind.IDLE:
            raise ValueError("cannot acquire the idle state")
        if self._state != FlowKind.IDLE:
            return False
        self._state = kind
        return True

    def release(self, kind: FlowKind) -> None:
        if self._state == kind:
            self._state = FlowKind.IDLE


# ==================== Phase tracking ====================

_TRANSITIONS: Dict[ClaimPhase, set] = {
    ClaimPhase.IDLE: {ClaimPhase.CHECKING_ALLOWANCES, ClaimPhase.FAILED},
    ClaimPhase.CHECKING_ALLOWANCES: {ClaimPhase.APPROVING, ClaimPhase.SUBMITTING_CLAIM, ClaimPhase.FAILED},
    ClaimPhase.APPROVING: {ClaimPhase.APPROVING, ClaimPhase.SUBMITTING_CLAIM, ClaimPhase.FAILED},
    ClaimPhase.SUBMITTING_CLAIM: {ClaimPhase.CONFIRMING_CLAIM, ClaimPhase.FAILED},
    ClaimPhase.CONFIRMING_CLAIM: {ClaimPhase.SETTLING_BALANCE, ClaimPhase.FAILED},
    ClaimPhase.SETTLING_BALANCE: {ClaimPhase.DONE, ClaimPhase.FAILED},
    ClaimPhase.DONE: set(),
    ClaimPhase.FAILED: set(),
}

# Phase entered when an event is produced; events not listed keep the phase.
_PHASE_FOR_EVENT: Dict[type, ClaimPhase] = {
    ApprovalRequiredEvent: ClaimPhase.APPROVING,
    ClaimSubmitEvent: ClaimPhase.SUBMITTING_CLAIM,
    ClaimSubmittedEvent: ClaimPhase.CONFIRMING_CLAIM,
    ClaimConfirmedEvent: ClaimPhase.SETTLING_BALANCE,
    ClaimCompletedEvent: ClaimPhase.DONE,
    ClaimFailedEvent: ClaimPhase.FAILED,
}


class ClaimFlowState:
    """Phase of one claim, with the legal transitions enforced."""

    def __init__(self) -> None:
        self.phase = ClaimPhase.IDLE
        self.history: List[ClaimPhase] = [ClaimPhase.IDLE]

    def advance(self, phase: ClaimPhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise InvalidTransition(self.phase.value, phase.value)
        self.phase = phase
        self.history.append(phase)

    def is_terminal(self) -> bool:
        return self.phase in (ClaimPhase.DONE, ClaimPhase.FAILED)


def status_text(event: BaseEvent) -> str:
    """Status line for a claim event."""
    if isinstance(event, ClaimRequestedEvent):
        return "Checking allowances..."
    if isinstance(event, ApprovalRequiredEvent):
        return f"Approving {event.pending[0].symbol}..."
    if isinstance(event, ClaimSubmitEvent):
        return "Claiming rewards..."
    if isinstance(event, ClaimSubmittedEvent):
        return "Waiting for confirmation..."
    if isinstance(event, ClaimConfirmedEvent):
        return "Updating balances..."
    if isinstance(event, (BalanceSettledEvent, ClaimCompletedEvent)):
        return "Claimed successfully"
    if isinstance(event, ClaimFailedEvent):
        return event.message
    return ""


# ==================== Orchestrator ====================

class ClaimOrchestrator:
    """
    Runs claims for one session.

    Args:
        wallet: Signer the claim transactions are sent through.
        chain: Chain reader (allowances, receipts).
        read_api: Read API used to resolve and re-read claimable balances.
        ledger: Transaction history receiving one entry per completed claim.
        settings: Claim settings (default: mainnet defaults).
        guard: Session flow lock, shared with anything else that must not
            overlap a claim.
    """

    def __init__(
        self,
        wallet: WalletSigner,
        chain: ChainReader,
        read_api: Optional[ClaimReadApi] = None,
        ledger: Optional[TransactionLedger] = None,
        settings: Optional[ClaimSettings] = None,
        guard: Optional[FlowGuard] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.settings = settings or ClaimSettings()
        self.deps = Dependencies(
            wallet=wallet,
            chain=chain,
            read_api=read_api,
            ledger=ledger,
            settings=self.settings,
        )
        self.event_bus = event_bus or setup_event_bus()
        self.guard = guard or FlowGuard()
        self.state = ClaimFlowState()
        self._claim_task: Optional["asyncio.Task[ClaimOutcome]"] = None

    def hook(self, event_class: type) -> Callable[[EventHookFunc], EventHookFunc]:
        """Decorator registering a status hook for ``event_class``."""
        def decorator(func: EventHookFunc) -> EventHookFunc:
            self.event_bus.hook(event_class, func)
            return func
        return decorator

    async def claim_all(self, wallet: str, snapshot: Optional[TotalClaimable] = None) -> ClaimOutcome:
        """
        Claim every reward in ``snapshot`` for ``wallet``.

        Args:
            wallet: Claiming wallet address.
            snapshot: Claimable set the user is looking at. Resolved through
                the read API, bypassing its cache, when omitted.

        Returns:
            ClaimOutcome: ``done``, ``failed`` with a failure kind and message,
            or ``skipped`` when another flow was running.
        """
        if snapshot is None and self.deps.read_api is None:
            raise ConfigurationError("claim_all needs a snapshot or a read API")

        if not self.guard.try_acquire(FlowKind.CLAIMING):
            logger.info("Claim request dropped: session is %s", self.guard.state.value)
            return ClaimOutcome(status="skipped", phase=self.state.phase, message=f"Session is {self.guard.state.value}")

        task = asyncio.create_task(self._run_claim(wallet, snapshot))
        task.add_done_callback(self._claim_finished)
        self._claim_task = task
        # A claim that has started broadcasting runs to completion even if
        # the caller goes away; the guard is released only when it ends.
        return await asyncio.shield(task)

    def _claim_finished(self, task: "asyncio.Task[ClaimOutcome]") -> None:
        self.guard.release(FlowKind.CLAIMING)
        self._claim_task = None
        if task.cancelled():
            logger.warning("Claim task was cancelled")
        elif task.exception() is not None:
            logger.error("Claim task raised", exc_info=task.exception())

    async def _run_claim(self, wallet: str, snapshot: Optional[TotalClaimable]) -> ClaimOutcome:
        state = ClaimFlowState()
        self.state = state
        state.advance(ClaimPhase.CHECKING_ALLOWANCES)

        if snapshot is None:
            try:
                snapshot = (await self.deps.read_api.resolve_claimable(wallet, force_refresh=True)).total_claimable
            except ClaimRouterError as e:
                state.advance(ClaimPhase.FAILED)
                return ClaimOutcome(
                    status="failed",
                    phase=state.phase,
                    failure_kind=FailureKind.UPSTREAM_READ,
                    message=f"Could not load claimable rewards: {e}",
                )

        context = ClaimContext(wallet=wallet, claimable=snapshot)
        chain = EventChain(self.event_bus, self.deps)
        result: Optional[BaseEvent] = None
        try:
            async for event in chain.execute(ClaimRequestedEvent(context=context)):
                phase = _PHASE_FOR_EVENT.get(type(event))
                if phase is not None:
                    state.advance(phase)
                    logger.info("Claim %s -> %s", wallet, phase.value)
                if isinstance(event, (ClaimCompletedEvent, ClaimFailedEvent)):
                    result = event
        except Exception as e:
            logger.exception("Claim flow for %s aborted in %s", wallet, state.phase.value)
            if not state.is_terminal():
                state.advance(ClaimPhase.FAILED)
            return ClaimOutcome(
                status="failed",
                phase=state.phase,
                rewards=snapshot.rewards,
                failure_kind=classify_failure(e),
                message=str(e) or type(e).__name__,
            )

        if isinstance(result, ClaimCompletedEvent):
            return ClaimOutcome(
                status="done",
                phase=state.phase,
                tx_hash=result.tx_hash,
                rewards=snapshot.rewards,
                entry=result.entry,
                latest=result.latest,
            )
        if isinstance(result, ClaimFailedEvent):
            return ClaimOutcome(
                status="failed",
                phase=state.phase,
                tx_hash=result.tx_hash,
                rewards=snapshot.rewards,
                failure_kind=result.kind,
                message=result.message,
            )

        if not state.is_terminal():
            state.advance(ClaimPhase.FAILED)
        return ClaimOutcome(
            status="failed",
            phase=state.phase,
            rewards=snapshot.rewards,
            failure_kind=FailureKind.UNKNOWN,
            message="Claim flow ended without a result",
        )

    async def refresh(self, wallet: str) -> Optional[TokensResponse]:
        """
        Manual balance refresh, bypassing the read cache.

        Returns:
            TokensResponse, or None when a claim or another refresh is running.
        """
        if self.deps.read_api is None:
            raise ConfigurationError("refresh needs a read API")
        if not self.guard.try_acquire(FlowKind.REFRESHING):
            logger.info("Refresh dropped: session is %s", self.guard.state.value)
            return None
        try:
            return await self.deps.read_api.resolve_claimable(wallet, force_refresh=True)
        finally:
            self.guard.release(FlowKind.REFRESHING)
