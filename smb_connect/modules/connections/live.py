import asyncio
import logging
from typing import Optional, Sequence

from smb_connect.core.errors import SmbConnectError
from smb_connect.core.live_state import LiveAggregate, MutationResult
from smb_connect.modules.connections.service import ConnectionService, PendingConnectionAggregator
from smb_connect.realtime.bridge import RealtimeChangeBridge
from smb_connect.realtime.transport import ChangeBinding

logger = logging.getLogger(__name__)


class LivePendingConnectionCount(LiveAggregate[int]):
    """
    Navigation badge count of incoming connection requests.

    Any insert, update or delete on connections triggers a full recount:
    new requests, withdrawals and decisions all move the number.
    """

    name = "pending-connections"

    def __init__(
        self,
        aggregator: PendingConnectionAggregator,
        connections: ConnectionService,
        bridge: Optional[RealtimeChangeBridge]
    ):
        super().__init__(bridge, 0)
        self.aggregator = aggregator
        self.connections = connections

    def bindings(self, member_id: str) -> Sequence[ChangeBinding]:
        return (ChangeBinding("connections", "*"),)

    def fetch(self, member_id: str) -> int:
        return self.aggregator.get_pending_count(member_id)

    async def accept(self, connection_id: str) -> MutationResult:
        return await self._decide(self.connections.accept, connection_id)

    async def reject(self, connection_id: str) -> MutationResult:
        return await self._decide(self.connections.reject, connection_id)

    async def _decide(self, decision, connection_id: str) -> MutationResult:
        if not self.member_id:
            return MutationResult(ok=False, error="No member profile")
        try:
            await asyncio.to_thread(decision, connection_id, self.member_id)
        except SmbConnectError as e:
            logger.error(f"Connection decision on {connection_id} failed: {e.detail}")
            return MutationResult.failed(e)
        await self.refresh()
        return MutationResult(ok=True)
