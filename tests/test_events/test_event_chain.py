"""
Test suite for EventChain execution engine.
Tests: 1) Event execution order 2) Handler errors reach the consumer 3) Hooks and BreakEvent
"""
import asyncio

import pytest

from claim_router.engine.events import (
    ApprovalRequiredEvent,
    BreakEvent,
    ClaimContext,
    ClaimFailedEvent,
    ClaimRequestedEvent,
    ClaimSubmitEvent,
    ClaimSubmittedEvent,
    Dependencies,
    EventBus,
)
from claim_router.engine.executors import EventChain
from claim_router.schemas.bases import FailureKind
from claim_router.schemas.https import RewardAsset, TotalClaimable

WALLET = "0x00000000000000000000000000000000000000aa"


def make_context():
    reward = RewardAsset(
        address="0xDaFFEB15F08581e6CA1e20A1e31e302A07e69B07",
        symbol="CLAIM",
        decimals=18,
        amount=str(10**18),
        formatted_amount="1.0000",
    )
    return ClaimContext(wallet=WALLET, claimable=TotalClaimable(rewards=[reward], token_addresses=[reward.address]))


async def handle_claim_requested(event: ClaimRequestedEvent, deps: Dependencies):
    return ApprovalRequiredEvent(context=event.context, pending=list(event.context.claimable.rewards))


async def handle_approval_required(event: ApprovalRequiredEvent, deps: Dependencies):
    return ClaimSubmitEvent(context=event.context)


async def handle_claim_submit(event: ClaimSubmitEvent, deps: Dependencies):
    return ClaimSubmittedEvent(context=event.context, tx_hash="0x" + "ab" * 32)


async def handle_claim_submitted(event: ClaimSubmittedEvent, deps: Dependencies):
    return BreakEvent(break_reason="done")


async def handle_submit_failure(event: ClaimSubmitEvent, deps: Dependencies):
    raise RuntimeError("wallet exploded")


async def handle_bad_return(event: ClaimSubmitEvent, deps: Dependencies):
    return "not an event"


def build_bus(submit_handler=handle_claim_submit):
    event_bus = EventBus()
    event_bus.subscribe(ClaimRequestedEvent, handle_claim_requested)
    event_bus.subscribe(ApprovalRequiredEvent, handle_approval_required)
    event_bus.subscribe(ClaimSubmitEvent, submit_handler)
    event_bus.subscribe(ClaimSubmittedEvent, handle_claim_submitted)
    return event_bus


@pytest.mark.asyncio
async def test_events_are_yielded_in_chain_order():
    chain = EventChain(build_bus(), Dependencies())

    events = [event async for event in chain.execute(ClaimRequestedEvent(context=make_context()))]

    assert [type(event) for event in events] == [
        ApprovalRequiredEvent,
        ClaimSubmitEvent,
        ClaimSubmittedEvent,
        BreakEvent,
    ]
    assert events[2].tx_hash == "0x" + "ab" * 32


@pytest.mark.asyncio
async def test_handler_error_reaches_consumer_after_earlier_events():
    chain = EventChain(build_bus(handle_submit_failure), Dependencies())
    seen = []

    with pytest.raises(RuntimeError, match="wallet exploded"):
        async for event in chain.execute(ClaimRequestedEvent(context=make_context())):
            seen.append(type(event))

    assert seen == [ApprovalRequiredEvent, ClaimSubmitEvent]


@pytest.mark.asyncio
async def test_unsupported_handler_result():
    chain = EventChain(build_bus(handle_bad_return), Dependencies())

    with pytest.raises(TypeError, match="unsupported type: str"):
        async for _ in chain.execute(ClaimRequestedEvent(context=make_context())):
            pass


@pytest.mark.asyncio
async def test_event_without_subscribers_ends_chain():
    chain = EventChain(EventBus(), Dependencies())

    events = [event async for event in chain.execute(ClaimRequestedEvent(context=make_context()))]

    assert events == []


@pytest.mark.asyncio
async def test_hooks_run_before_handlers():
    order = []

    async def hook(event, deps):
        order.append(("hook", type(event).__name__))

    async def handler(event, deps):
        order.append(("handler", type(event).__name__))
        return ClaimFailedEvent(context=event.context, kind=FailureKind.UNKNOWN, message="stop")

    event_bus = EventBus()
    event_bus.hook(ClaimRequestedEvent, hook)
    event_bus.subscribe(ClaimRequestedEvent, handler)

    events = [event async for event in EventChain(event_bus, Dependencies()).execute(
        ClaimRequestedEvent(context=make_context())
    )]

    assert order == [("hook", "ClaimRequestedEvent"), ("handler", "ClaimRequestedEvent")]
    assert events[0].kind == FailureKind.UNKNOWN


def test_sync_handlers_are_rejected():
    def handler(event, deps):
        return None

    with pytest.raises(TypeError):
        EventBus().subscribe(ClaimRequestedEvent, handler)
    with pytest.raises(TypeError):
        EventBus().hook(ClaimRequestedEvent, handler)


def test_context_reward_lookup_ignores_case():
    context = make_context()

    assert context.reward_for("0xdaffeb15f08581e6ca1e20a1e31e302a07e69b07").symbol == "CLAIM"
    assert context.reward_for(WALLET) is None


@pytest.mark.asyncio
async def test_closing_the_chain_stops_pending_handlers():
    release = asyncio.Event()
    reached = []

    async def slow_submit(event: ClaimSubmitEvent, deps: Dependencies):
        await release.wait()
        reached.append("submitted")
        return ClaimSubmittedEvent(context=event.context, tx_hash="0x" + "ab" * 32)

    events = EventChain(build_bus(slow_submit), Dependencies()).execute(ClaimRequestedEvent(context=make_context()))

    first = await events.__anext__()
    await events.aclose()
    release.set()
    await asyncio.sleep(0)

    assert isinstance(first, ApprovalRequiredEvent)
    assert reached == []
