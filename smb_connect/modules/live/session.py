import asyncio
import logging
from supabase import Client
from typing import Any, Awaitable, Callable, Dict, Optional

from smb_connect.core.errors import TransientFetchFailure
from smb_connect.core.live_state import MutationResult
from smb_connect.modules.connections.live import LivePendingConnectionCount
from smb_connect.modules.connections.service import ConnectionService, PendingConnectionAggregator
from smb_connect.modules.members.service import MemberResolver
from smb_connect.modules.messages.live import LiveUnreadCount
from smb_connect.modules.messages.service import UnreadCountAggregator
from smb_connect.modules.notifications.live import LiveNotificationFeed
from smb_connect.modules.notifications.service import NotificationFeed
from smb_connect.realtime.bridge import RealtimeChangeBridge

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Dict[str, Any]], Awaitable[None]]


class MemberSession:
    """
    The live badge counts and notification feed of one signed-in user.

    Owns every realtime subscription it opens. Switching user closes the old
    subscriptions before any new one is opened; close() releases them all.
    """

    def __init__(self, supabase: Client, bridge: Optional[RealtimeChangeBridge], on_change: Optional[SnapshotListener] = None):
        self.resolver = MemberResolver(supabase)
        self.unread = LiveUnreadCount(UnreadCountAggregator(supabase), bridge)
        self.pending = LivePendingConnectionCount(
            PendingConnectionAggregator(supabase), ConnectionService(supabase), bridge
        )
        self.notifications = LiveNotificationFeed(NotificationFeed(supabase), bridge)
        self.on_change = on_change
        self.user_id: Optional[str] = None
        self.member_id: Optional[str] = None
        self.last_error: Optional[Exception] = None
        for aggregate in self.aggregates:
            aggregate.add_listener(self._changed)

    @property
    def aggregates(self):
        return (self.unread, self.pending, self.notifications)

    @property
    def loading(self) -> bool:
        return any(aggregate.loading for aggregate in self.aggregates)

    async def switch_user(self, user_id: Optional[str]) -> Optional[str]:
        """Track user_id (None on sign-out). Returns the resolved member id."""
        await self._close_aggregates()
        self.user_id = user_id
        self.member_id = None
        self.last_error = None
        try:
            self.member_id = await asyncio.to_thread(self.resolver.resolve, user_id)
        except TransientFetchFailure as e:
            logger.error(f"Member lookup failed for user {user_id}: {e.detail}")
            self.last_error = e
        if user_id and self.member_id is None and self.last_error is None:
            logger.info(f"User {user_id} has no member profile; live counts disabled")
        await asyncio.gather(*(aggregate.start(self.member_id) for aggregate in self.aggregates))
        return self.member_id

    async def refresh(self) -> None:
        await asyncio.gather(*(aggregate.refresh() for aggregate in self.aggregates))

    async def handle_command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        """Run a client command: refresh, mark_read, mark_all_read, mark_chat_read, accept_connection, reject_connection."""
        action = command.get("action")
        if action == "refresh":
            await self.refresh()
            result = MutationResult(ok=True)
        elif action == "mark_read":
            result = await self.notifications.mark_as_read(str(command.get("notification_id", "")))
        elif action == "mark_all_read":
            result = await self.notifications.mark_all_as_read()
        elif action == "mark_chat_read":
            result = await self.unread.mark_chat_read(str(command.get("chat_id", "")))
        elif action == "accept_connection":
            result = await self.pending.accept(str(command.get("connection_id", "")))
        elif action == "reject_connection":
            result = await self.pending.reject(str(command.get("connection_id", "")))
        else:
            result = MutationResult(ok=False, error=f"Unknown action: {action}")
        return {"action": action, "ok": result.ok, "error": result.error}

    def snapshot(self) -> Dict[str, Any]:
        return {
            "member_id": self.member_id,
            "unread_count": self.unread.value,
            "pending_connection_count": self.pending.value,
            "notifications": [n.model_dump(mode="json") for n in self.notifications.notifications],
            "notifications_unread_count": self.notifications.unread_count,
            "loading": self.loading,
        }

    async def close(self) -> None:
        await self._close_aggregates()
        self.user_id = None
        self.member_id = None

    async def _close_aggregates(self) -> None:
        await asyncio.gather(*(aggregate.close() for aggregate in self.aggregates))

    async def _changed(self) -> None:
        if self.on_change is not None:
            await self.on_change(self.snapshot())
