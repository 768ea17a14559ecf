import asyncio
import logging
from typing import Optional, Sequence

from smb_connect.core.errors import SmbConnectError
from smb_connect.core.live_state import LiveAggregate, MutationResult
from smb_connect.modules.messages.service import UnreadCountAggregator
from smb_connect.realtime.bridge import RealtimeChangeBridge
from smb_connect.realtime.transport import ChangeBinding

logger = logging.getLogger(__name__)


class LiveUnreadCount(LiveAggregate[int]):
    """Navigation badge count of unread chat messages."""

    name = "unread-messages"

    def __init__(self, aggregator: UnreadCountAggregator, bridge: Optional[RealtimeChangeBridge]):
        super().__init__(bridge, 0)
        self.aggregator = aggregator

    def bindings(self, member_id: str) -> Sequence[ChangeBinding]:
        return (
            ChangeBinding("messages", "INSERT"),
            # last_read_at moves when this member reads a chat
            ChangeBinding("chat_participants", "UPDATE", f"member_id=eq.{member_id}"),
        )

    def fetch(self, member_id: str) -> int:
        return self.aggregator.get_unread_count(member_id)

    async def mark_chat_read(self, chat_id: str) -> MutationResult:
        if not self.member_id:
            return MutationResult(ok=False, error="No member profile")
        try:
            await asyncio.to_thread(self.aggregator.mark_chat_read, chat_id, self.member_id)
        except SmbConnectError as e:
            logger.error(f"Marking chat {chat_id} read failed: {e.detail}")
            return MutationResult.failed(e)
        await self.refresh()
        return MutationResult(ok=True)
