"""
Live aggregates: values derived from Supabase tables and refetched on change.

A LiveAggregate fetches its value for one member, subscribes to the tables
that can change it, and refetches the whole value on every change event.
Responses are applied only if they answer the latest request for the current
member and the aggregate is still open; anything else is dropped.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from smb_connect.core.errors import SmbConnectError, TransientFetchFailure
from smb_connect.realtime.bridge import ChangeSubscription, RealtimeChangeBridge
from smb_connect.realtime.transport import ChangeBinding

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[], Awaitable[None]]


@dataclass
class MutationResult:
    ok: bool
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: Exception) -> "MutationResult":
        detail = error.detail if isinstance(error, SmbConnectError) else str(error)
        return cls(ok=False, error=detail)


class LiveAggregate(Generic[T]):
    name = "live"

    def __init__(self, bridge: Optional[RealtimeChangeBridge], empty: T):
        self.value: T = empty
        self.loading = False
        self.last_error: Optional[Exception] = None
        self.member_id: Optional[str] = None
        self._empty = empty
        self._bridge = bridge
        self._subscription: Optional[ChangeSubscription] = None
        self._request_seq = 0
        self._closed = True
        self._listeners: List[Listener] = []

    def bindings(self, member_id: str) -> Sequence[ChangeBinding]:
        raise NotImplementedError

    def fetch(self, member_id: str) -> T:
        """Blocking read of the full value; runs in a worker thread."""
        raise NotImplementedError

    @property
    def subscription(self) -> Optional[ChangeSubscription]:
        return self._subscription

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    async def start(self, member_id: Optional[str]) -> None:
        """Begin tracking member_id. None leaves the aggregate at its empty value."""
        await self.close()
        self._closed = False
        self.member_id = member_id
        self.value = self._empty
        self.last_error = None
        if member_id is None:
            await self._notify()
            return
        if self._bridge is not None:
            try:
                self._subscription = await self._bridge.open(self.bindings(member_id), self.refresh, name=self.name)
            except Exception as e:
                # Still serve the baseline; it just won't update live
                logger.error(f"Could not subscribe {self.name} for member {member_id}: {e}")
        await self.refresh()

    async def refresh(self) -> bool:
        """Refetch and apply the value. Returns False when the response was not applied."""
        if self._closed or self.member_id is None:
            return False
        self._request_seq += 1
        seq = self._request_seq
        member_id = self.member_id
        self.loading = True
        try:
            value = await self._load(member_id)
        except TransientFetchFailure as e:
            if self._is_current(seq, member_id):
                self.loading = False
                self.last_error = e
                logger.error(f"{self.name} refresh failed for member {member_id}, keeping last value: {e.detail}")
            return False
        except Exception as e:
            if self._is_current(seq, member_id):
                self.loading = False
                self.last_error = TransientFetchFailure(f"Unreadable {self.name} data: {e}")
                logger.exception(f"Unexpected error refreshing {self.name} for member {member_id}, keeping last value")
            return False
        if not self._is_current(seq, member_id):
            logger.debug(f"Dropping stale {self.name} response (request {seq}, latest {self._request_seq})")
            return False
        self.value = value
        self.loading = False
        self.last_error = None
        await self._notify()
        return True

    async def close(self) -> None:
        self._closed = True
        self._request_seq += 1
        self.loading = False
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()

    async def _load(self, member_id: str) -> T:
        return await asyncio.to_thread(self.fetch, member_id)

    def _is_current(self, seq: int, member_id: str) -> bool:
        return not self._closed and seq == self._request_seq and member_id == self.member_id

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                await listener()
            except Exception as e:
                logger.error(f"{self.name} listener failed: {e}")
