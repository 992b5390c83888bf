"""
Event chain execution engine.

Runs an EventBus workflow: every handler result is dispatched in turn until
a handler returns BreakEvent or nothing handles the current event.
"""

import asyncio
import contextlib
from typing import AsyncGenerator, List

from .events import BaseEvent, BreakEvent, EventBus, Dependencies


class EventChain:
    """Executes event-driven workflows by chaining event handler results.

    Events are produced by a background task and yielded in order. A handler
    exception ends the chain and is re-raised to the consumer once every
    event produced before it has been yielded.
    """

    def __init__(
        self,
        event_bus: EventBus,
        deps: Dependencies,
    ) -> None:
        """
        Initialize event chain executor.

        Args:
            event_bus: The event bus to dispatch events through.
            deps: Dependencies container to pass to handlers.
        """
        self.event_bus = event_bus
        self.deps = deps

    async def execute(self, initial_event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Execute event chain starting from initial event.

        Yields:
            Events encountered during chain execution.

        Raises:
            Exception: Whatever a handler raised.
        """
        events_queue: asyncio.Queue = asyncio.Queue()
        errors: List[BaseException] = []

        async def producer():
            try:
                async for event in self._process_event(initial_event):
                    await events_queue.put(event)
            except Exception as e:
                errors.append(e)
            finally:
                await events_queue.put(None)  # Sentinel to indicate completion

        task = asyncio.create_task(producer())

        try:
            while True:
                event = await events_queue.get()
                if event is None:  # Chain complete
                    break
                yield event
            await task
        finally:
            # Consumer left early (closed or cancelled): stop the producer.
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if errors:
            raise errors[0]

    async def _process_event(self, event: BaseEvent) -> AsyncGenerator[BaseEvent, None]:
        """
        Process single event and recursively handle results.

        Args:
            event: The event to process.

        Yields:
            Events from the chain.
        """
        if isinstance(event, BreakEvent):
            return

        async for result in self.event_bus.dispatch(event, self.deps):
            if result is None:
                continue
            if isinstance(result, BaseEvent):
                yield result
                async for e in self._process_event(result):
                    yield e
            else:
                raise TypeError(f"Handler returned unsupported type: {type(result).__name__}")
