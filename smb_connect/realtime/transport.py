"""Change-notification transports: how table change events reach the bridge."""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence

from smb_connect.config.settings import settings
from smb_connect.database.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]


@dataclass(frozen=True)
class ChangeBinding:
    """One watched table. event is INSERT, UPDATE, DELETE or * (any)."""
    table: str
    event: str = "*"
    filter: Optional[str] = None  # PostgREST-style row filter, e.g. "member_id=eq.<id>"


class ChangeTransport(Protocol):
    async def subscribe(self, channel_name: str, bindings: Sequence[ChangeBinding], on_event: EventCallback) -> Any:
        ...

    async def unsubscribe(self, handle: Any) -> None:
        ...


class SupabaseRealtimeTransport:
    """Postgres change events delivered over a Supabase Realtime channel."""

    def __init__(
        self,
        client_factory: Callable[[], Awaitable[Any]] = SupabaseClient.get_async_client,
        schema: Optional[str] = None
    ):
        self._client_factory = client_factory
        self.schema = schema or settings.realtime_schema

    async def subscribe(self, channel_name: str, bindings: Sequence[ChangeBinding], on_event: EventCallback) -> Any:
        client = await self._client_factory()
        channel = client.channel(channel_name)
        for binding in bindings:
            channel.on_postgres_changes(
                binding.event,
                callback=on_event,
                table=binding.table,
                schema=self.schema,
                filter=binding.filter,
            )
        await channel.subscribe()
        logger.debug(f"Realtime channel {channel_name} subscribed to {[b.table for b in bindings]}")
        return channel

    async def unsubscribe(self, handle: Any) -> None:
        client = await self._client_factory()
        await client.remove_channel(handle)
