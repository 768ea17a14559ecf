import asyncio
import logging
from typing import Optional, Sequence

from smb_connect.core.errors import SmbConnectError
from smb_connect.core.live_state import LiveAggregate, MutationResult
from smb_connect.modules.notifications.schemas import NotificationListResponse
from smb_connect.modules.notifications.service import NotificationFeed
from smb_connect.realtime.bridge import RealtimeChangeBridge
from smb_connect.realtime.transport import ChangeBinding

logger = logging.getLogger(__name__)


class LiveNotificationFeed(LiveAggregate[NotificationListResponse]):
    """
    Notification dropdown state: the newest page plus the unread badge count.

    Mark operations are not optimistic. The feed changes only after the
    update succeeds, and is then refetched rather than patched in place.
    """

    name = "notifications"

    def __init__(self, feed: NotificationFeed, bridge: Optional[RealtimeChangeBridge], page_size: Optional[int] = None):
        super().__init__(bridge, NotificationListResponse())
        self.feed = feed
        self.page_size = page_size

    @property
    def notifications(self):
        return self.value.notifications

    @property
    def unread_count(self) -> int:
        return self.value.unread_count

    def bindings(self, member_id: str) -> Sequence[ChangeBinding]:
        return (ChangeBinding("notifications", "*", f"member_id=eq.{member_id}"),)

    def fetch(self, member_id: str) -> NotificationListResponse:
        return NotificationListResponse(
            notifications=self.feed.list(member_id, limit=self.page_size),
            unread_count=self.feed.get_unread_count(member_id),
        )

    async def mark_as_read(self, notification_id: str) -> MutationResult:
        return await self._mutate(self.feed.mark_read, notification_id, self.member_id)

    async def mark_all_as_read(self) -> MutationResult:
        return await self._mutate(self.feed.mark_all_read, self.member_id)

    async def _mutate(self, operation, *args) -> MutationResult:
        try:
            await asyncio.to_thread(operation, *args)
        except SmbConnectError as e:
            logger.error(f"Notification update failed: {e.detail}")
            return MutationResult.failed(e)
        await self.refresh()
        return MutationResult(ok=True)
