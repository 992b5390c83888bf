"""
Typed events for the claim workflow.

Each event holds the data for one step. A handler receives the event plus the
injected ``Dependencies`` and returns the next event. One claim is one chain:

    ClaimRequestedEvent
      -> ApprovalRequiredEvent (once per token needing approval)
      -> ClaimSubmitEvent -> ClaimSubmittedEvent -> ClaimConfirmedEvent
      -> BalanceSettledEvent -> ClaimCompletedEvent
    any step -> ClaimFailedEvent
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Callable, Optional, List, Awaitable, AsyncGenerator

from pydantic import BaseModel, ConfigDict

from ..adapters.bases import ChainReader, ClaimReadApi, WalletSigner
from ..adapters.evm.constants import ClaimSettings
from ..schemas.bases import FailureKind
from ..schemas.claims import LedgerEntry
from ..schemas.https import RewardAsset, TotalClaimable

if TYPE_CHECKING:
    from ..clients.ledger import TransactionLedger

# ==================== Base Event ====================

class BaseEvent(ABC):
    """Base class for all events in the system."""

    @abstractmethod
    def __repr__(self) -> str:
        """String representation of the event."""
        pass


class ClaimContext(BaseModel):
    """
    Business data shared by every event of one claim.

    Attributes:
        wallet: Claiming wallet (fee owner and transaction sender).
        claimable: Claimable set resolved right before the claim started.
    """
    wallet: str
    claimable: TotalClaimable

    def reward_for(self, token: str) -> Optional[RewardAsset]:
        for reward in self.claimable.rewards:
            if reward.address.lower() == token.lower():
                return reward
        return None


# ==================== Trigger Events (External) ====================

class ClaimRequestedEvent(BaseModel, BaseEvent):
    """External trigger: claim everything in ``context.claimable``."""
    context: ClaimContext

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimRequestedEvent(wallet={self.context.wallet}, tokens={len(self.context.claimable.token_addresses)})"


# ==================== Step Events ====================

class ApprovalRequiredEvent(BaseModel, BaseEvent):
    """Step: ``pending[0]`` must be approved for the router before claiming."""
    context: ClaimContext
    pending: List[RewardAsset]

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ApprovalRequiredEvent(pending={[reward.symbol for reward in self.pending]})"


class ClaimSubmitEvent(BaseModel, BaseEvent):
    """Step: allowances are in place, submit the claim transaction."""
    context: ClaimContext
    direct: bool = False

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimSubmitEvent(direct={self.direct})"


class ClaimSubmittedEvent(BaseModel, BaseEvent):
    """Step: the claim transaction was broadcast."""
    context: ClaimContext
    tx_hash: str

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimSubmittedEvent(tx_hash={self.tx_hash})"


class ClaimConfirmedEvent(BaseModel, BaseEvent):
    """Step: the claim was mined and paid the wallet."""
    context: ClaimContext
    tx_hash: str
    transferred: int

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimConfirmedEvent(tx_hash={self.tx_hash}, transferred={self.transferred})"


class BalanceSettledEvent(BaseModel, BaseEvent):
    """Step: post-claim balance polling finished.

    ``settled`` is False when the retry budget ran out before the claimable
    set read empty; ``latest`` is the last observed set either way.
    """
    context: ClaimContext
    tx_hash: str
    latest: TotalClaimable
    settled: bool

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"BalanceSettledEvent(settled={self.settled})"


# ==================== Result Events ====================

class ClaimCompletedEvent(BaseModel, BaseEvent):
    """Result: claim recorded in the ledger."""
    context: ClaimContext
    tx_hash: str
    entry: LedgerEntry
    latest: TotalClaimable

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimCompletedEvent(tx_hash={self.tx_hash})"


class ClaimFailedEvent(BaseModel, BaseEvent):
    """Result: claim halted."""
    context: ClaimContext
    kind: FailureKind
    message: str
    tx_hash: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return f"ClaimFailedEvent(kind={self.kind.value}, message={self.message})"


class BreakEvent(BaseModel, BaseEvent):
    """Internal event to break the event chain."""
    break_reason: str = ""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __repr__(self) -> str:
        return "BreakEvent()"


# ==================== Dependencies Container ====================

@dataclass(frozen=True)
class Dependencies:
    """Container for infrastructure dependencies (read-only)."""
    wallet: Optional[WalletSigner] = None
    chain: Optional[ChainReader] = None
    read_api: Optional[ClaimReadApi] = None
    ledger: Optional["TransactionLedger"] = None
    settings: ClaimSettings = field(default_factory=ClaimSettings)


# ==================== Event Bus ====================

EventHandlerFunc = Callable[[BaseEvent, Dependencies], Awaitable[Optional[BaseEvent]]]
EventHookFunc = Callable[[BaseEvent, Dependencies], Awaitable[None]]


class EventBus:
    """Event dispatcher for publishing and subscribing to events."""

    def __init__(self) -> None:
        """Initialize with empty subscribers and hooks."""
        self._subscribers: Dict[type, list[EventHandlerFunc]] = {}
        self._hooks: Dict[type, list[EventHookFunc]] = {}

    def subscribe(self, event_class: type[BaseEvent], handler: EventHandlerFunc) -> None:
        """
        Register an async handler for the given event class.
        Multiple handlers can be subscribed to the same event type and run in parallel.

        Args:
            event_class: The event class to subscribe to.
            handler: The async handler function to call when the event is published.

        Raises:
            TypeError: If handler is not a coroutine function.
        """
        if not inspect.iscoroutinefunction(handler):
            raise TypeError(f"Handler must be a coroutine function, got {type(handler).__name__}")

        self._subscribers.setdefault(event_class, []).append(handler)

    def hook(self, event_class: type[BaseEvent], hook_func: EventHookFunc) -> None:
        """
        Register a hook for the given event class.
        Hooks are executed before subscribers when the event is dispatched.

        Args:
            event_class: The event class to hook into.
            hook_func: The hook function to call when the event is published.
        """
        if not inspect.iscoroutinefunction(hook_func):
            raise TypeError(f"Hook must be a coroutine function, got {type(hook_func).__name__}")

        self._hooks.setdefault(event_class, []).append(hook_func)

    async def dispatch(self, event: BaseEvent, deps: Dependencies) -> AsyncGenerator[Optional[BaseEvent], None]:
        """
        Dispatch an event to all registered hooks and subscribers.
        Hooks run first (concurrently, awaited together), then all subscribers run in parallel.

        Args:
            event: The event to dispatch.
            deps: Dependencies container with injected services.

        Yields:
            Results from all subscribers as they complete. Yields nothing if no subscribers are registered.
        """
        hooks = self._hooks.get(type(event), [])
        await asyncio.gather(*(hook(event, deps) for hook in hooks))

        handlers = self._subscribers.get(type(event), [])
        if not handlers:
            return

        tasks = [handler(event, deps) for handler in handlers]
        for coro in asyncio.as_completed(tasks):
            yield await coro
