"""
Realtime change bridge.

Turns table change events into "something changed, refetch" callbacks. Every
event produces exactly one callback run; events are not coalesced and their
payload is not inspected. Subscriptions are handles owned by whoever opened
them and must be closed by that owner.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Set
from uuid import uuid4

from smb_connect.realtime.transport import ChangeBinding, ChangeTransport

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], Awaitable[Any]]


class ChangeSubscription:
    def __init__(self, transport: ChangeTransport, name: str, bindings: Sequence[ChangeBinding], on_change: ChangeCallback):
        self.name = name
        self.bindings = tuple(bindings)
        self.event_count = 0
        self._transport = transport
        self._on_change = on_change
        self._handle: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> "ChangeSubscription":
        self._loop = asyncio.get_running_loop()
        self._handle = await self._transport.subscribe(self.name, self.bindings, self._on_event)
        return self

    def _on_event(self, payload: Dict[str, Any]) -> None:
        # Transports may call back from their own thread; hop onto the owner's loop
        if self._closed or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._spawn)

    def _spawn(self) -> None:
        if self._closed:
            return
        self.event_count += 1
        task = self._loop.create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._on_change()
        except Exception as e:
            logger.error(f"Change callback failed on {self.name}: {e}")

    async def wait_idle(self) -> None:
        """Wait until every event delivered so far has finished its callback."""
        while True:
            await asyncio.sleep(0)
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        if self._handle is not None:
            try:
                await self._transport.unsubscribe(self._handle)
            except Exception as e:
                logger.warning(f"Error removing realtime channel {self.name}: {e}")
            self._handle = None
        logger.debug(f"Closed change subscription {self.name}")


class RealtimeChangeBridge:
    def __init__(self, transport: ChangeTransport):
        self.transport = transport

    async def open(self, bindings: Sequence[ChangeBinding], on_change: ChangeCallback, name: str = "changes") -> ChangeSubscription:
        """Subscribe on_change to every event of bindings. Channel names are unique per subscription."""
        subscription = ChangeSubscription(self.transport, f"{name}-{uuid4().hex[:12]}", bindings, on_change)
        return await subscription.open()
